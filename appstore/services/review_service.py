"""Reviews: one per (app, user), written together with the app's rating aggregate."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.exceptions import (
    ForbiddenError,
    ReviewNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from appstore.models.review import Review
from appstore.services import download_service, profile_service
from appstore.services.rating_service import lock_app, recompute_rating

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
    return rating


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    text = text.strip()
    return text or None


async def get_user_review(db: AsyncSession, app_id: str, user_id: str) -> Review | None:
    result = await db.execute(
        select(Review).where(Review.app_id == app_id, Review.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_reviews(db: AsyncSession, app_id: str) -> list[Review]:
    """All reviews of an app, newest first."""
    result = await db.execute(
        select(Review)
        .where(Review.app_id == app_id)
        .order_by(Review.created_at.desc(), Review.id.asc())
    )
    return list(result.scalars().all())


async def _write_review(
    db: AsyncSession,
    app_id: str,
    user_id: str,
    rating: int,
    title: str | None,
    comment: str | None,
) -> Review:
    await lock_app(db, app_id)
    verified = await download_service.has_downloaded(db, user_id, app_id)

    review = await get_user_review(db, app_id, user_id)
    if review is None:
        review = Review(
            app_id=app_id,
            user_id=user_id,
            rating=rating,
            title=title,
            comment=comment,
            is_verified_purchase=verified,
        )
        db.add(review)
    else:
        review.rating = rating
        review.title = title
        review.comment = comment
        review.is_verified_purchase = verified
        review.updated_at = datetime.now(timezone.utc)

    await recompute_rating(db, app_id)
    await db.commit()
    await db.refresh(review)
    return review


async def submit_review(
    db: AsyncSession,
    app_id: str,
    user_id: str | None,
    rating: int,
    title: str | None = None,
    comment: str | None = None,
) -> Review:
    """Insert or replace the caller's review and refresh the app's rating aggregate.

    Both writes share one transaction. If a concurrent first submission by the
    same user wins the (app_id, user_id) unique constraint, the transaction is
    rolled back and replayed once as an update of the winning row.
    """
    if not user_id:
        raise UnauthorizedError("Sign in to review apps")
    rating = _validate_rating(rating)
    title, comment = _clean(title), _clean(comment)
    await profile_service.require_profile(db, user_id)

    try:
        review = await _write_review(db, app_id, user_id, rating, title, comment)
    except IntegrityError:
        await db.rollback()
        if await get_user_review(db, app_id, user_id) is None:
            raise
        logger.debug("Concurrent review insert for app=%s user=%s; retrying as update", app_id, user_id)
        review = await _write_review(db, app_id, user_id, rating, title, comment)

    logger.info("Review saved: app=%s user=%s rating=%d", app_id, user_id, rating)
    return review


async def delete_review(db: AsyncSession, review_id: str, caller_id: str | None) -> dict:
    """Delete the caller's own review and refresh the app's rating aggregate."""
    if not caller_id:
        raise UnauthorizedError("Sign in to manage your reviews")

    review = (
        await db.execute(select(Review).where(Review.id == review_id))
    ).scalar_one_or_none()
    if review is None:
        raise ReviewNotFoundError(review_id)
    if review.user_id != caller_id:
        raise ForbiddenError("Not the review author")

    app_id = review.app_id
    await lock_app(db, app_id)
    await db.delete(review)
    average, count = await recompute_rating(db, app_id)
    await db.commit()

    logger.info("Review deleted: %s (app=%s)", review_id, app_id)
    return {"app_id": app_id, "rating_average": average, "rating_count": count}
