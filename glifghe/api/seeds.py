"""
Development seed rows.

Six fixed users with empty bio / font / profile picture. Their auth ids
are stable placeholders (`seed|<name>`) since no identity provider
account backs them.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from glifghe.api.models import User

logger = logging.getLogger(__name__)

SEED_USERS = [
    (1, "Sofia"),
    (2, "Nikola"),
    (3, "Patrick"),
    (4, "Matt"),
    (5, "James"),
    (6, "Vaughan"),
]


def seed_auth_id(name: str) -> str:
    return f"seed|{name.lower()}"


async def seed_users(session: AsyncSession) -> int:
    """Insert the seed users that are not present yet. Returns the count added."""
    added = 0
    for user_id, name in SEED_USERS:
        if await session.get(User, user_id):
            continue
        session.add(
            User(
                id=user_id,
                auth_id=seed_auth_id(name),
                name=name,
                bio="",
                font="",
                profile_picture="",
            )
        )
        added += 1
    await session.flush()
    logger.info("Seeded %d of %d users", added, len(SEED_USERS))
    return added
