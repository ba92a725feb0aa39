"""Create the booking tables directly from metadata, for local development.

Production databases are managed with Alembic (scripts/migrate.py).
"""

import asyncio

from echannel.database import engine
from echannel.models import metadata


async def init_db(drop_existing: bool = False) -> None:
    """Create all tables, optionally dropping them first."""
    async with engine.begin() as conn:
        if drop_existing:
            await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized with tables: {', '.join(sorted(metadata.tables))}")


if __name__ == "__main__":
    import sys

    asyncio.run(init_db(drop_existing="--drop" in sys.argv[1:]))
