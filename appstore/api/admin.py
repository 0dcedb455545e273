"""Operator endpoints. Moderator role required."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.auth import Principal, get_current_principal
from appstore.core.exceptions import ForbiddenError
from appstore.database import get_db
from appstore.schemas.review import RatingReconcileResponse
from appstore.services import rating_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/ratings/reconcile", response_model=RatingReconcileResponse)
async def reconcile_ratings(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Recompute every app's rating aggregate from its reviews and report drift."""
    if not principal.is_moderator:
        raise ForbiddenError("Moderator role required")
    return RatingReconcileResponse(**await rating_service.reconcile_ratings(db))
