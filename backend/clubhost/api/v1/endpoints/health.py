"""Health check endpoints."""

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost.api import deps
from clubhost.api.router import TrailingSlashRouter

router = TrailingSlashRouter()


@router.get("")
async def health_check() -> dict[str, str]:
    """Check if the API process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(deps.get_db)) -> dict[str, str]:
    """Check that the database answers.

    Returns:
    --------
        dict: A dictionary containing the status of the API.
    """
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}
