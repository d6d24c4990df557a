"""
SQLAlchemy ORM models.

Tables:
  users    — profiles, keyed by the identity provider subject (auth_id)
  follows  — social graph edges (follower → followed), by auth_id
  posts    — image posts; image_url holds an opaque CDN public id or a URL
  comments — messages attached to a post
"""
import time
from typing import Optional

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from glifghe.api.database import Base


def _now() -> int:
    return int(time.time())


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    auth_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    bio: Mapped[str] = mapped_column(Text, default="", nullable=False)
    font: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    # Opaque image CDN public id
    profile_picture: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    posts = relationship("Post", back_populates="author", lazy="noload")


class Follow(Base):
    __tablename__ = "follows"

    follower_auth_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.auth_id"), primary_key=True
    )
    followed_auth_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.auth_id"), primary_key=True
    )
    created_at: Mapped[int] = mapped_column(Integer, default=_now, nullable=False)

    __table_args__ = (
        # "who follows user X?" — profile follower lists
        Index("idx_follows_followed", "followed_auth_id"),
    )


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text)
    # Unix epoch seconds
    date_added: Mapped[int] = mapped_column(Integer, default=_now, nullable=False)

    author = relationship("User", back_populates="posts", lazy="joined")

    __table_args__ = (
        Index("idx_posts_user", "user_id"),
        Index("idx_posts_date_added", "date_added"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    message: Mapped[Optional[str]] = mapped_column(Text)
    date_added: Mapped[int] = mapped_column(Integer, default=_now, nullable=False)

    author = relationship("User", lazy="joined")

    __table_args__ = (Index("idx_comments_post", "post_id"),)
