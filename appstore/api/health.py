import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.database import get_db
from appstore.models.app import App
from appstore.models.download import AppDownload
from appstore.models.review import Review
from appstore.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    apps = (await db.execute(select(func.count(App.id)))).scalar() or 0
    published = (
        await db.execute(select(func.count(App.id)).where(App.status == "published"))
    ).scalar() or 0
    reviews = (await db.execute(select(func.count(Review.id)))).scalar() or 0
    downloads = (await db.execute(select(func.count(AppDownload.id)))).scalar() or 0

    return HealthResponse(
        status="healthy",
        version=_VERSION,
        apps_count=apps,
        published_apps_count=published,
        reviews_count=reviews,
        downloads_count=downloads,
    )


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe: verifies DB connectivity."""
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected"}
    except SQLAlchemyError:
        logger.exception("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": "unavailable"},
        )
