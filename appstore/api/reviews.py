from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.auth import Principal, get_current_principal, optional_principal
from appstore.database import get_db
from appstore.schemas.review import (
    ReviewerSummary,
    ReviewListResponse,
    ReviewResponse,
    ReviewSubmitRequest,
)
from appstore.services import catalog_service, review_service

router = APIRouter(tags=["reviews"])


@router.put("/apps/{app_id}/reviews", response_model=ReviewResponse)
async def submit_review(
    app_id: str,
    req: ReviewSubmitRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Create or replace the caller's review of an app."""
    review = await review_service.submit_review(
        db, app_id, principal.user_id, req.rating, req.title, req.comment,
    )
    return _review_to_response(review)


@router.get("/apps/{app_id}/reviews", response_model=ReviewListResponse)
async def list_reviews(
    app_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal | None = Depends(optional_principal),
):
    """Reviews of an app. A signed-in caller also gets their own review as ``my_review``."""
    app = await catalog_service.get_app(db, app_id)
    reviews = await review_service.list_reviews(db, app.id)
    mine = None
    if principal is not None:
        mine = next((review for review in reviews if review.user_id == principal.user_id), None)
    return ReviewListResponse(
        total=len(reviews),
        rating_average=float(app.rating_average or 0.0),
        rating_count=app.rating_count,
        results=[_review_to_response(review) for review in reviews],
        my_review=_review_to_response(mine) if mine else None,
    )


@router.delete("/reviews/{review_id}")
async def delete_review(
    review_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = await review_service.delete_review(db, review_id, principal.user_id)
    return {"status": "deleted", **result}


def _review_to_response(review) -> ReviewResponse:
    reviewer = None
    if review.user:
        reviewer = ReviewerSummary(id=review.user.id, full_name=review.user.full_name)
    return ReviewResponse(
        id=review.id,
        app_id=review.app_id,
        user_id=review.user_id,
        rating=review.rating,
        title=review.title,
        comment=review.comment,
        is_verified_purchase=review.is_verified_purchase,
        created_at=review.created_at,
        updated_at=review.updated_at,
        user=reviewer,
    )
