"""
Cached queries and mutations used by the pages.

Query keys:
  ("user", auth_id)        profile record, None when no profile exists
  ("posts",)               main feed
  ("posts", auth_id)       one user's posts
  ("followers", auth_id)
  ("following", auth_id)
  ("post", post_id)
  ("comments", post_id)
"""
import logging

from glifghe.web.clients.api_client import api_client
from glifghe.web.config import settings
from glifghe.web.query_cache import Mutation, QueryCache, QueryResult

logger = logging.getLogger(__name__)

query_cache = QueryCache()

_DEFAULT = object()


def _wait(wait):
    return settings.render_wait_seconds if wait is _DEFAULT else wait


# ─────────────────────── Queries ──────────────────────────────────────────

async def user_query(auth_id: str, wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(
        ("user", auth_id), lambda: api_client.get_user_by_id(auth_id), _wait(wait)
    )


async def posts_query(wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(("posts",), api_client.get_posts, _wait(wait))


async def user_posts_query(auth_id: str, wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(
        ("posts", auth_id), lambda: api_client.get_user_posts(auth_id), _wait(wait)
    )


async def followers_query(auth_id: str, wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(
        ("followers", auth_id), lambda: api_client.get_followers(auth_id), _wait(wait)
    )


async def following_query(auth_id: str, wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(
        ("following", auth_id), lambda: api_client.get_following(auth_id), _wait(wait)
    )


async def post_query(post_id: int, wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(
        ("post", post_id), lambda: api_client.get_post(post_id), _wait(wait)
    )


async def comments_query(post_id: int, wait=_DEFAULT) -> QueryResult:
    return await query_cache.fetch(
        ("comments", post_id), lambda: api_client.get_comments(post_id), _wait(wait)
    )


# ─────────────────────── Mutations ────────────────────────────────────────

def create_user_mutation(auth_id: str) -> Mutation:
    def on_success(result, user, token):
        query_cache.invalidate("user", auth_id)

    return Mutation("create_user", api_client.create_user, on_success)


def update_user_mutation(auth_id: str) -> Mutation:
    def on_success(result, changes, token):
        query_cache.invalidate("user", auth_id)

    return Mutation("update_user", api_client.update_user, on_success)


def create_post_mutation() -> Mutation:
    def on_success(result, image_url, message, token):
        query_cache.invalidate("posts")

    return Mutation("create_post", api_client.create_post, on_success)


def add_comment_mutation() -> Mutation:
    def on_success(result, post_id, message, token):
        query_cache.invalidate("comments", post_id)

    return Mutation("add_comment", api_client.add_comment, on_success)


# Follow mutations are kept per acting user so a profile page can tell
# whether that user still has a follow / unfollow in flight.
# Idle pairs are dropped whenever a pair for a new user is made.
_follow_mutations: dict[str, tuple[Mutation, Mutation]] = {}


def _is_idle(pair: tuple[Mutation, Mutation]) -> bool:
    return not any(m.is_pending for m in pair)


def _follow_pair(current_auth_id: str) -> tuple[Mutation, Mutation]:
    pair = _follow_mutations.get(current_auth_id)
    if pair is None:
        for auth_id in [a for a, p in _follow_mutations.items() if _is_idle(p)]:
            del _follow_mutations[auth_id]

        def on_success(result, target_auth_id, token):
            query_cache.invalidate("followers", target_auth_id)
            query_cache.invalidate("following", current_auth_id)

        pair = (
            Mutation("follow_user", api_client.follow_user, on_success),
            Mutation("unfollow_user", api_client.unfollow_user, on_success),
        )
        _follow_mutations[current_auth_id] = pair
    return pair


def follow_mutation(current_auth_id: str) -> Mutation:
    return _follow_pair(current_auth_id)[0]


def unfollow_mutation(current_auth_id: str) -> Mutation:
    return _follow_pair(current_auth_id)[1]


def follow_pending(current_auth_id: str | None) -> bool:
    if not current_auth_id or current_auth_id not in _follow_mutations:
        return False
    follow, unfollow = _follow_mutations[current_auth_id]
    return follow.is_pending or unfollow.is_pending


def reset() -> None:
    """Drop all cached queries and follow mutation state."""
    query_cache.clear()
    _follow_mutations.clear()
