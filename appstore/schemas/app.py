from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

AppStatus = Literal["draft", "submitted", "under_review", "approved", "rejected", "published"]
PriceRange = Literal["all", "free", "paid"]
SortBy = Literal["newest", "popular", "rating", "name"]


class CatalogFilter(BaseModel):
    """Closed set of catalog query options. Unknown keys are rejected."""

    status: AppStatus | None = None  # None means "published"
    category_slug: str | None = None  # "all" means no restriction
    featured: bool = False
    developer_id: str | None = None
    search_text: str | None = None
    price_range: PriceRange = "all"
    min_rating: float = Field(default=0, ge=0, le=5)
    sort_by: SortBy = "newest"

    model_config = {"extra": "forbid", "frozen": True}


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    icon_name: str | None = None
    color: str
    sort_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class CategorySummary(BaseModel):
    id: str
    name: str
    slug: str
    color: str


class DeveloperSummary(BaseModel):
    id: str
    full_name: str
    developer_name: str | None = None
    developer_website: str | None = None


class ScreenshotResponse(BaseModel):
    id: str
    image_url: str
    caption: str | None = None
    sort_order: int

    model_config = {"from_attributes": True}


class AppResponse(BaseModel):
    id: str
    developer_id: str
    category_id: str
    name: str
    slug: str
    short_description: str
    full_description: str
    icon_url: str | None = None
    version: str
    price_usd: float
    price_zwl: float
    is_free: bool
    status: str
    download_count: int
    rating_average: float
    rating_display: float
    rating_count: int
    featured: bool
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    developer: DeveloperSummary | None = None
    category: CategorySummary | None = None
    screenshots: list[ScreenshotResponse] = []


class AppListResponse(BaseModel):
    total: int
    results: list[AppResponse]


class DeveloperStatsResponse(BaseModel):
    developer_id: str
    apps_count: int
    published_count: int
    total_downloads: int
    average_rating: float
