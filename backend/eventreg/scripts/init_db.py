"""
Create the registrations table directly from the models.

Meant for local SQLite setups; PostgreSQL deployments run `alembic upgrade head`.
"""

import asyncio

from eventreg.core.config import get_settings
from eventreg.core.logging import get_logger, setup_logging
from eventreg.db.base import Base
from eventreg.db.session import dispose_engine, get_engine
from eventreg.models import RegistrationRecord  # noqa: F401 - registers the table on Base.metadata


async def init_db() -> None:
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await dispose_engine()


def main() -> None:
    setup_logging()
    logger = get_logger(__name__)
    asyncio.run(init_db())
    logger.info("database_initialized", url=get_settings().DATABASE_URL.split("@")[-1])


if __name__ == "__main__":
    main()
