"""Script to initialize the database.

Creates all tables directly from the table definitions. Use
``scripts/migrate.py`` for databases managed through migrations.
"""

import asyncio

from sqlalchemy import text

from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized ({engine.dialect.name}): {', '.join(metadata.tables)}")


if __name__ == "__main__":
    asyncio.run(init_db())
