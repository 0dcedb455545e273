"""Rating aggregate: ``apps.rating_average`` / ``apps.rating_count``.

The aggregate is always recomputed from the full review set of the app, never
adjusted incrementally, so a recompute is idempotent. Writers that change
reviews call :func:`recompute_rating` inside their own transaction after
locking the app row (see :func:`lock_app`); that serialises concurrent review
writes per app and keeps the aggregate consistent with the committed reviews.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from appstore import database
from appstore.core.exceptions import AppNotFoundError
from appstore.models.app import App
from appstore.models.review import Review

logger = logging.getLogger(__name__)


def display_rating(value: float | None) -> float:
    """Round half-up to one decimal for display. The stored value keeps full precision."""
    return float(Decimal(str(value or 0.0)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def mean_rating(ratings: list[int]) -> float:
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


async def lock_app(db: AsyncSession, app_id: str) -> App:
    """Load an App with a row-level lock (PostgreSQL) or plain SELECT (SQLite)."""
    stmt = select(App).where(App.id == app_id)
    if not database.is_sqlite:
        stmt = stmt.with_for_update()
    app = (await db.execute(stmt)).scalar_one_or_none()
    if app is None:
        raise AppNotFoundError(app_id)
    return app


async def recompute_rating(db: AsyncSession, app_id: str) -> tuple[float, int]:
    """Recompute the aggregate for *app_id* in the caller's transaction (no commit)."""
    await db.flush()
    result = await db.execute(select(Review.rating).where(Review.app_id == app_id))
    ratings = [int(r) for r in result.scalars().all()]
    average, count = mean_rating(ratings), len(ratings)

    await db.execute(
        update(App)
        .where(App.id == app_id)
        .values(
            rating_average=average,
            rating_count=count,
            updated_at=datetime.now(timezone.utc),
        )
    )
    return average, count


async def on_review_changed(db: AsyncSession, app_id: str) -> tuple[float, int]:
    """Recompute and persist the aggregate after a review create/update/delete."""
    await lock_app(db, app_id)
    average, count = await recompute_rating(db, app_id)
    await db.commit()
    logger.info("Rating recomputed: app=%s average=%.4f count=%d", app_id, average, count)
    return average, count


async def reconcile_ratings(db: AsyncSession) -> dict:
    """Find apps whose stored aggregate disagrees with their reviews and repair them."""
    apps = list((await db.execute(select(App.id, App.rating_average, App.rating_count))).all())
    drift: list[dict] = []

    for app_id, stored_average, stored_count in apps:
        ratings = [
            int(r)
            for r in (
                await db.execute(select(Review.rating).where(Review.app_id == app_id))
            ).scalars().all()
        ]
        actual_average, actual_count = mean_rating(ratings), len(ratings)
        if stored_count == actual_count and abs((stored_average or 0.0) - actual_average) < 1e-9:
            continue

        logger.warning(
            "Stale rating aggregate: app=%s stored=(%.4f, %d) actual=(%.4f, %d)",
            app_id, stored_average or 0.0, stored_count or 0, actual_average, actual_count,
        )
        await lock_app(db, app_id)
        await recompute_rating(db, app_id)
        drift.append({
            "app_id": app_id,
            "stored_average": float(stored_average or 0.0),
            "stored_count": int(stored_count or 0),
            "actual_average": actual_average,
            "actual_count": actual_count,
        })

    await db.commit()
    return {"checked": len(apps), "repaired": len(drift), "drift": drift}
