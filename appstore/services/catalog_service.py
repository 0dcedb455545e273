"""Catalog queries: filtered, sorted app listings plus category/developer lookups.

The store handles the coarse filters (status, category, owner, featured, text
search). Price range, minimum rating and the requested ordering are applied
here with a stable sort, so ties always fall back to the store's
``created_at DESC, id ASC`` order and repeated queries return identical
results for unchanged data.
"""

import unicodedata
from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.exceptions import AppNotFoundError
from appstore.models.app import App
from appstore.models.category import Category
from appstore.schemas.app import CatalogFilter
from appstore.services.rating_service import display_rating

DEFAULT_STATUS = "published"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_at(app: App) -> datetime:
    # SQLite hands back naive datetimes; treat them as UTC.
    value = app.created_at or _EPOCH
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _name_key(app: App) -> str:
    # Accented letters sort with their base letter: "Éclair" falls between "Apple" and "Zebra".
    decomposed = unicodedata.normalize("NFKD", app.name or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


_SORT_KEYS = {
    "newest": (_created_at, True),
    "popular": (lambda app: app.download_count or 0, True),
    "rating": (lambda app: app.rating_average or 0.0, True),
    "name": (_name_key, False),
}


def _order_screenshots(app: App) -> App:
    app.screenshots.sort(key=lambda shot: shot.sort_order)
    return app


def _catalog_query(filters: CatalogFilter):
    query = select(App).where(App.status == (filters.status or DEFAULT_STATUS))

    slug = (filters.category_slug or "").strip()
    if slug and slug.lower() != "all":
        query = query.join(Category, App.category_id == Category.id).where(Category.slug == slug)

    if filters.featured:
        query = query.where(App.featured.is_(True))

    if filters.developer_id:
        query = query.where(App.developer_id == filters.developer_id)

    if filters.search_text:
        pattern = _like_pattern(filters.search_text.strip())
        query = query.where(
            App.name.ilike(pattern, escape="\\") | App.short_description.ilike(pattern, escape="\\")
        )

    return query.order_by(App.created_at.desc(), App.id.asc())


def apply_client_filters(apps: list[App], filters: CatalogFilter) -> list[App]:
    """Price range, minimum rating and ordering. Pure; usable on cached lists."""
    if filters.price_range == "free":
        apps = [app for app in apps if app.is_free]
    elif filters.price_range == "paid":
        apps = [app for app in apps if not app.is_free]

    if filters.min_rating > 0:
        apps = [app for app in apps if (app.rating_average or 0.0) >= filters.min_rating]

    key, reverse = _SORT_KEYS[filters.sort_by]
    # sorted() is stable, also with reverse=True.
    return sorted(apps, key=key, reverse=reverse)


async def list_apps(db: AsyncSession, filters: CatalogFilter | None = None) -> list[App]:
    """Return catalog apps matching *filters*; published apps only by default."""
    filters = filters or CatalogFilter()
    result = await db.execute(_catalog_query(filters))
    apps = list(result.scalars().unique().all())
    return [_order_screenshots(app) for app in apply_client_filters(apps, filters)]


async def get_app(db: AsyncSession, id_or_slug: str) -> App:
    """Get an app by id or slug or raise 404."""
    result = await db.execute(
        select(App).where(or_(App.id == id_or_slug, App.slug == id_or_slug))
    )
    apps = list(result.scalars().all())
    if not apps:
        raise AppNotFoundError(id_or_slug)
    # An id match wins over a slug that happens to equal another app's id.
    app = next((candidate for candidate in apps if candidate.id == id_or_slug), apps[0])
    return _order_screenshots(app)


async def list_categories(db: AsyncSession) -> list[Category]:
    """Active categories in display order."""
    result = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order.asc(), Category.name.asc())
    )
    return list(result.scalars().all())


async def developer_summary(db: AsyncSession, developer_id: str) -> dict:
    """Dashboard totals across every app the developer owns, whatever its status."""
    row = (
        await db.execute(
            select(
                func.count(App.id),
                func.coalesce(func.sum(App.download_count), 0),
                func.coalesce(func.avg(App.rating_average), 0.0),
            ).where(App.developer_id == developer_id)
        )
    ).one()
    published = (
        await db.execute(
            select(func.count(App.id)).where(
                App.developer_id == developer_id, App.status == DEFAULT_STATUS
            )
        )
    ).scalar() or 0

    apps_count, total_downloads, avg_rating = row
    return {
        "developer_id": developer_id,
        "apps_count": int(apps_count or 0),
        "published_count": int(published),
        "total_downloads": int(total_downloads or 0),
        "average_rating": display_rating(float(avg_rating or 0.0)),
    }
