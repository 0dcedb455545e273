from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.database import get_db
from appstore.schemas.app import CategoryResponse
from appstore.services import catalog_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await catalog_service.list_categories(db)
    return [CategoryResponse.model_validate(category) for category in categories]
