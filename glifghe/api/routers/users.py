"""
User and social-graph endpoints:
  POST   /users                     — create the caller's profile
  GET    /users/{auth_id}           — fetch a profile
  PATCH  /users/me                  — edit the caller's profile
  GET    /users/{auth_id}/posts     — a user's posts, newest first
  GET    /users/{auth_id}/followers — users following auth_id
  GET    /users/{auth_id}/following — users auth_id follows
  POST   /users/{auth_id}/follow    — caller follows auth_id
  DELETE /users/{auth_id}/follow    — caller unfollows auth_id
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from glifghe.api.auth import get_current_auth_id
from glifghe.api.database import get_db
from glifghe.api.models import Follow, Post, User
from glifghe.api.routers.posts import build_post_response
from glifghe.api.schemas import PostResponse, UserCreate, UserResponse, UserUpdate
from glifghe.api.telemetry import FOLLOW_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


async def get_user_by_auth_id(db: AsyncSession, auth_id: str) -> User | None:
    result = await db.execute(select(User).where(User.auth_id == auth_id))
    return result.scalar_one_or_none()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    auth_id: str = Depends(get_current_auth_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Create the profile for the authenticated subject.

    The subject comes from the bearer token, never from the body, so a
    caller can only ever create their own profile.
    """
    with tracer.start_as_current_span("create_user"):
        if await get_user_by_auth_id(db, auth_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Profile already exists",
            )

        user = User(
            auth_id=auth_id,
            name=body.name,
            bio=body.bio,
            font=body.font,
            profile_picture=body.profile_picture,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # a concurrent request created the same profile first
            await db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Profile already exists",
            )

        logger.info("Created user %s (auth_id=%s)", user.name, user.auth_id)
        return user


@router.patch("/me", response_model=UserResponse)
async def update_user(
    body: UserUpdate,
    auth_id: str = Depends(get_current_auth_id),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_by_auth_id(db, auth_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user, field, value)
    await db.flush()
    return user


@router.get("/{auth_id}", response_model=UserResponse)
async def get_user(auth_id: str, db: AsyncSession = Depends(get_db)):
    user = await get_user_by_auth_id(db, auth_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{auth_id}/posts", response_model=list[PostResponse])
async def list_user_posts(auth_id: str, db: AsyncSession = Depends(get_db)):
    rows = await db.execute(
        select(Post)
        .join(User, Post.user_id == User.id)
        .where(User.auth_id == auth_id)
        .order_by(Post.date_added.desc(), Post.id.desc())
    )
    return [build_post_response(p) for p in rows.scalars().all()]


@router.get("/{auth_id}/followers", response_model=list[UserResponse])
async def list_followers(auth_id: str, db: AsyncSession = Depends(get_db)):
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.follower_auth_id == User.auth_id)
        .where(Follow.followed_auth_id == auth_id)
        .order_by(Follow.created_at, User.id)
    )
    return rows.scalars().all()


@router.get("/{auth_id}/following", response_model=list[UserResponse])
async def list_following(auth_id: str, db: AsyncSession = Depends(get_db)):
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.followed_auth_id == User.auth_id)
        .where(Follow.follower_auth_id == auth_id)
        .order_by(Follow.created_at, User.id)
    )
    return rows.scalars().all()


@router.post("/{auth_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def follow_user(
    auth_id: str,
    current_auth_id: str = Depends(get_current_auth_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a follower → followed edge. Following twice is a no-op."""
    with tracer.start_as_current_span("follow_user") as span:
        span.set_attribute("follow.follower", current_auth_id)
        span.set_attribute("follow.followed", auth_id)

        if current_auth_id == auth_id:
            raise HTTPException(status_code=400, detail="Cannot follow yourself")

        if not await get_user_by_auth_id(db, auth_id):
            raise HTTPException(status_code=404, detail="User not found")
        if not await get_user_by_auth_id(db, current_auth_id):
            raise HTTPException(status_code=404, detail="Create a profile first")

        existing = await db.get(Follow, (current_auth_id, auth_id))
        if existing:
            return  # already following

        db.add(Follow(follower_auth_id=current_auth_id, followed_auth_id=auth_id))
        try:
            await db.commit()
        except IntegrityError:
            # lost the race to a concurrent follow of the same edge
            await db.rollback()
            logger.info("%s already follows %s", current_auth_id, auth_id)
            return

        FOLLOW_MUTATIONS_TOTAL.labels(action="follow").inc()
        logger.info("%s followed %s", current_auth_id, auth_id)


@router.delete("/{auth_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    auth_id: str,
    current_auth_id: str = Depends(get_current_auth_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("unfollow_user"):
        result = await db.execute(
            delete(Follow).where(
                Follow.follower_auth_id == current_auth_id,
                Follow.followed_auth_id == auth_id,
            )
        )
        if result.rowcount > 0:
            FOLLOW_MUTATIONS_TOTAL.labels(action="unfollow").inc()
            logger.info("%s unfollowed %s", current_auth_id, auth_id)
