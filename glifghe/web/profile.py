"""
Profile page state.

The page depends on four independent fetches: profile, posts, followers
and following. They are joined into a single page state:

  1. any of them still loading           → ProfileLoading
  2. else the first error, in the order
     profile, posts, followers, following → ProfileFailed
     (later errors are not shown)
  3. else no profile record              → ProfileNotFound
  4. else                                → ProfileReady
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any

from glifghe.web import queries
from glifghe.web.query_cache import QueryResult

UNKNOWN_ERROR = "Unknown error"


@dataclass(frozen=True)
class ProfileLoading:
    pass


@dataclass(frozen=True)
class ProfileFailed:
    label: str
    message: str

    @property
    def text(self) -> str:
        return f"Error loading {self.label}: {self.message}"


@dataclass(frozen=True)
class ProfileNotFound:
    pass


@dataclass(frozen=True)
class ProfileReady:
    profile: dict
    posts: list = field(default_factory=list)
    followers: list = field(default_factory=list)
    following: list = field(default_factory=list)
    is_following: bool = False


@dataclass(frozen=True)
class ProfileResources:
    profile: QueryResult
    posts: QueryResult
    followers: QueryResult
    following: QueryResult

    def in_error_order(self) -> list[tuple[str, QueryResult]]:
        return [
            ("profile", self.profile),
            ("posts", self.posts),
            ("followers", self.followers),
            ("following list", self.following),
        ]


def error_message(error: Any) -> str:
    if isinstance(error, Exception):
        return str(error)
    return UNKNOWN_ERROR


def is_following(followers: list | None, viewer_auth_id: str | None) -> bool:
    """Whether the viewer appears in the followers list (linear scan)."""
    if not viewer_auth_id:
        return False
    return any(f.get("auth_id") == viewer_auth_id for f in followers or [])


def reconcile(resources: ProfileResources, viewer_auth_id: str | None):
    results = resources.in_error_order()

    if any(result.is_loading for _, result in results):
        return ProfileLoading()

    for label, result in results:
        if result.is_error:
            return ProfileFailed(label, error_message(result.error))

    if not resources.profile.data:
        return ProfileNotFound()

    followers = resources.followers.data or []
    return ProfileReady(
        profile=resources.profile.data,
        posts=resources.posts.data or [],
        followers=followers,
        following=resources.following.data or [],
        is_following=is_following(followers, viewer_auth_id),
    )


async def load_profile(auth_id: str) -> ProfileResources:
    """Fire all four fetches at once; none waits on another."""
    profile, posts, followers, following = await asyncio.gather(
        queries.user_query(auth_id),
        queries.user_posts_query(auth_id),
        queries.followers_query(auth_id),
        queries.following_query(auth_id),
    )
    return ProfileResources(profile, posts, followers, following)
