#!/usr/bin/env python3
"""
Seed script — inserts the fixed development users.

Creates:
  • Sofia, Nikola, Patrick, Matt, James, Vaughan (ids 1-6)

Run against the configured database (DATABASE_URL or the DB_* variables):
  python scripts/seed_data.py --create-tables

Existing rows are left untouched, so the script can be re-run safely.
"""
import argparse
import asyncio
import logging

from glifghe.api.database import AsyncSessionLocal, engine, init_db
from glifghe.api.seeds import SEED_USERS, seed_auth_id, seed_users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)


async def main(create_tables: bool) -> None:
    if create_tables:
        await init_db()

    async with AsyncSessionLocal() as session:
        added = await seed_users(session)
        await session.commit()
    await engine.dispose()

    print(f"  ✓ {added} users added")
    for user_id, name in SEED_USERS:
        print(f"    {user_id}  {name:<8} {seed_auth_id(name)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the GlIFGHE database")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before seeding",
    )
    args = parser.parse_args()
    asyncio.run(main(args.create_tables))
