"""Initialize the database schema."""

from sqlalchemy.ext.asyncio import AsyncEngine

from clubhost.core.logging import logger
from clubhost.models import Base


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables for every model.

    Args:
    ----
        engine (AsyncEngine): The engine to create the tables on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Ensured {len(Base.metadata.tables)} tables exist")
