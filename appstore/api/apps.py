from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.exceptions import ValidationError
from appstore.database import get_db
from appstore.schemas.app import (
    AppListResponse,
    AppResponse,
    CatalogFilter,
    CategorySummary,
    DeveloperSummary,
    ScreenshotResponse,
)
from appstore.services import catalog_service
from appstore.services.rating_service import display_rating

router = APIRouter(prefix="/apps", tags=["apps"])


@router.get("", response_model=AppListResponse)
async def list_apps(
    status: str | None = Query(None),
    category: str | None = Query(None),
    featured: bool = Query(False),
    developer_id: str | None = Query(None),
    search: str | None = Query(None),
    price_range: str = Query("all"),
    min_rating: float = Query(0),
    sort_by: str = Query("newest"),
    db: AsyncSession = Depends(get_db),
):
    try:
        filters = CatalogFilter(
            status=status,
            category_slug=category,
            featured=featured,
            developer_id=developer_id,
            search_text=search,
            price_range=price_range,
            min_rating=min_rating,
            sort_by=sort_by,
        )
    except SchemaValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ValidationError(f"Invalid catalog filter: {', '.join(fields)}")

    apps = await catalog_service.list_apps(db, filters)
    return AppListResponse(total=len(apps), results=[_app_to_response(app) for app in apps])


@router.get("/{id_or_slug}", response_model=AppResponse)
async def get_app(id_or_slug: str, db: AsyncSession = Depends(get_db)):
    app = await catalog_service.get_app(db, id_or_slug)
    return _app_to_response(app)


def _app_to_response(app) -> AppResponse:
    developer = None
    if app.developer:
        developer = DeveloperSummary(
            id=app.developer.id,
            full_name=app.developer.full_name,
            developer_name=app.developer.developer_name,
            developer_website=app.developer.developer_website,
        )
    category = None
    if app.category:
        category = CategorySummary(
            id=app.category.id,
            name=app.category.name,
            slug=app.category.slug,
            color=app.category.color,
        )

    return AppResponse(
        id=app.id,
        developer_id=app.developer_id,
        category_id=app.category_id,
        name=app.name,
        slug=app.slug,
        short_description=app.short_description,
        full_description=app.full_description,
        icon_url=app.icon_url,
        version=app.version,
        price_usd=float(app.price_usd or 0),
        price_zwl=float(app.price_zwl or 0),
        is_free=app.is_free,
        status=app.status,
        download_count=app.download_count,
        rating_average=float(app.rating_average or 0.0),
        rating_display=display_rating(app.rating_average),
        rating_count=app.rating_count,
        featured=app.featured,
        published_at=app.published_at,
        created_at=app.created_at,
        updated_at=app.updated_at,
        developer=developer,
        category=category,
        screenshots=[ScreenshotResponse.model_validate(shot) for shot in app.screenshots],
    )
