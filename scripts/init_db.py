"""Script to initialize the database."""

import argparse
import asyncio

from sqlalchemy import insert, select

from app.database import engine
from app.models import metadata, services

SAMPLE_SERVICES = [
    {"name": "Consultation", "duration_min": 30, "price_cents": 5000, "currency": "usd"},
    {"name": "Extended session", "duration_min": 60, "price_cents": 9000, "currency": "usd"},
    {"name": "Follow-up", "duration_min": 15, "price_cents": 2500, "currency": "usd"},
]


async def init_db(seed: bool) -> None:
    """Create all tables (and the no-overlap constraint), optionally seeding services."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        print("✓ Database initialized successfully!")

        if seed:
            existing = (await conn.execute(select(services.c.id).limit(1))).first()
            if existing:
                print("• Services already present, skipping seed")
            else:
                await conn.execute(insert(services), SAMPLE_SERVICES)
                print(f"✓ Seeded {len(SAMPLE_SERVICES)} services")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", action="store_true", help="insert sample services")
    args = parser.parse_args()
    asyncio.run(init_db(args.seed))
