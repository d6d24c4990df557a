"""
Redis client wrapper.

Responsibilities:
  • Main feed cache — STRING (JSON list of posts) keyed by feed:main,
                      dropped whenever a post is created
  • Token cache     — STRING keyed by tok:{sha256(token)}
                      value = identity provider subject

The API reads both on the hot path; neither is authoritative, the
database is.
"""
import hashlib
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from glifghe.api.config import settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None

FEED_KEY = "feed:main"


async def init_redis() -> None:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialised — call init_redis() at startup")
    return _redis


# ─────────────────────── Main Feed Cache ──────────────────────────────────

async def get_cached_feed() -> list[dict] | None:
    r = get_redis()
    raw = await r.get(FEED_KEY)
    if raw:
        return json.loads(raw)
    return None


async def set_cached_feed(posts: list[dict]) -> None:
    r = get_redis()
    await r.set(FEED_KEY, json.dumps(posts), ex=settings.feed_cache_ttl)


async def invalidate_feed() -> None:
    r = get_redis()
    await r.delete(FEED_KEY)


# ─────────────────────── Token → Subject Cache ────────────────────────────

def _token_key(token: str) -> str:
    # Never store raw bearer tokens
    return "tok:" + hashlib.sha256(token.encode("utf-8")).hexdigest()


async def get_cached_subject(token: str) -> str | None:
    r = get_redis()
    return await r.get(_token_key(token))


async def set_cached_subject(token: str, subject: str) -> None:
    r = get_redis()
    await r.set(_token_key(token), subject, ex=settings.token_cache_ttl)
