import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from wasabi.database import get_db
from wasabi.dependencies import get_file_store
from wasabi.services.file_store import FileStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[FileStore, Depends(get_file_store)],
) -> dict[str, Any]:
    checks = {
        "database": "unhealthy",
        "storage": "unhealthy",
    }

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Readiness database check failed: {e!r}")

    # Check upload directory
    if store.root.is_dir():
        checks["storage"] = "healthy"

    overall = "healthy" if all(v == "healthy" for v in checks.values()) else "unhealthy"

    return {
        "status": overall,
        "checks": checks,
    }
