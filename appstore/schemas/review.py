from datetime import datetime

from pydantic import BaseModel, Field


class ReviewSubmitRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    comment: str | None = None


class ReviewerSummary(BaseModel):
    id: str
    full_name: str


class ReviewResponse(BaseModel):
    id: str
    app_id: str
    user_id: str
    rating: int
    title: str | None = None
    comment: str | None = None
    is_verified_purchase: bool
    created_at: datetime
    updated_at: datetime
    user: ReviewerSummary | None = None


class ReviewListResponse(BaseModel):
    total: int
    rating_average: float
    rating_count: int
    results: list[ReviewResponse]
    my_review: ReviewResponse | None = None


class RatingReconcileResponse(BaseModel):
    checked: int
    repaired: int
    drift: list[dict]
