from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.database import get_db
from appstore.schemas.app import DeveloperStatsResponse
from appstore.services import catalog_service

router = APIRouter(prefix="/developers", tags=["developers"])


@router.get("/{developer_id}/summary", response_model=DeveloperStatsResponse)
async def developer_summary(developer_id: str, db: AsyncSession = Depends(get_db)):
    """Dashboard totals across all of the developer's apps."""
    return DeveloperStatsResponse(**await catalog_service.developer_summary(db, developer_id))
