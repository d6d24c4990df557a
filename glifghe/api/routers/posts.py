"""
Post endpoints:
  GET  /posts               — main feed, newest first (Redis cached)
  POST /posts               — create a post as the caller
  GET  /posts/{id}          — fetch a single post
  GET  /posts/{id}/comments — comments on a post, oldest first
  POST /posts/{id}/comments — comment on a post as the caller
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glifghe.api.auth import get_current_auth_id
from glifghe.api.clients import redis_client
from glifghe.api.database import get_db
from glifghe.api.models import Comment, Post, User
from glifghe.api.schemas import CommentCreate, CommentResponse, PostCreate, PostResponse
from glifghe.api.telemetry import FEED_CACHE_TOTAL, FEED_LATENCY, POSTS_CREATED_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def build_post_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        user_name=post.author.name if post.author else None,
        image_url=post.image_url,
        message=post.message,
        date_added=post.date_added,
    )


def build_comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        auth_id=comment.author.auth_id,
        user_name=comment.author.name,
        profile_picture=comment.author.profile_picture,
        message=comment.message,
    )


async def _require_author(db: AsyncSession, auth_id: str) -> User:
    result = await db.execute(select(User).where(User.auth_id == auth_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="Create a profile first")
    return user


@router.get("/", response_model=list[PostResponse])
async def list_posts(db: AsyncSession = Depends(get_db)):
    """
    Main feed. Served from Redis when warm; a Redis outage only costs the
    cache, the feed is rebuilt from the database.
    """
    start_time = time.time()
    with tracer.start_as_current_span("list_posts") as span:
        try:
            cached = await redis_client.get_cached_feed()
        except Exception as exc:
            logger.warning("Feed cache read failed (%s) — serving from database", exc)
            FEED_CACHE_TOTAL.labels(result="error").inc()
            cached = None
        else:
            FEED_CACHE_TOTAL.labels(result="hit" if cached is not None else "miss").inc()

        if cached is not None:
            span.set_attribute("feed.source", "cache")
            FEED_LATENCY.observe(time.time() - start_time)
            return cached

        rows = await db.execute(
            select(Post).order_by(Post.date_added.desc(), Post.id.desc())
        )
        posts = [build_post_response(p) for p in rows.scalars().all()]
        span.set_attribute("feed.source", "database")
        span.set_attribute("feed.posts_returned", len(posts))

        try:
            await redis_client.set_cached_feed([p.model_dump() for p in posts])
        except Exception as exc:
            logger.warning("Feed cache write failed: %s", exc)

        FEED_LATENCY.observe(time.time() - start_time)
        return posts


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    auth_id: str = Depends(get_current_auth_id),
    db: AsyncSession = Depends(get_db),
):
    """
    1. Validate the author has a profile.
    2. Persist the post.
    3. Drop the cached main feed so the next read includes it.
    """
    with tracer.start_as_current_span("create_post") as span:
        user = await _require_author(db, auth_id)

        post = Post(author=user, image_url=body.image_url, message=body.message)
        db.add(post)
        await db.flush()     # materialise id
        await db.commit()    # visible before the feed cache is dropped

        span.set_attribute("post.id", post.id)
        span.set_attribute("post.user_id", post.user_id)

        try:
            await redis_client.invalidate_feed()
        except Exception as exc:
            logger.warning("Feed cache invalidation failed: %s", exc)

        POSTS_CREATED_TOTAL.inc()
        logger.info("Post created: %s by user %s", post.id, post.user_id)
        return build_post_response(post)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    post = await db.get(Post, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return build_post_response(post)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(post_id: int, db: AsyncSession = Depends(get_db)):
    if not await db.get(Post, post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    rows = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.date_added, Comment.id)
    )
    return [build_comment_response(c) for c in rows.scalars().all()]


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    body: CommentCreate,
    auth_id: str = Depends(get_current_auth_id),
    db: AsyncSession = Depends(get_db),
):
    if not await db.get(Post, post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    user = await _require_author(db, auth_id)

    comment = Comment(post_id=post_id, author=user, message=body.message)
    db.add(comment)
    await db.flush()
    logger.info("Comment %s on post %s by user %s", comment.id, post_id, user.id)
    return build_comment_response(comment)
