"""Download ledger: exactly one ``app_downloads`` row per (user, app).

Key design decisions:
- **Re-open, not re-buy**: if the user already has a row for the app, the
  existing row is returned with ``created=False``; nothing is written.
- **One unit of work**: the ledger insert and the ``download_count``
  increment are flushed in the same transaction and committed once. The
  increment is a SQL expression (``download_count + 1``), not a
  read-modify-write.
- **Retry safety**: the membership check is backed by the
  ``uq_app_downloads_app_user`` constraint. A concurrent insert that loses
  the race rolls back (counter included) and reports the winner's row.
- The ledger never talks to a payment provider; a purchase arrives with the
  receipt already obtained.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.exceptions import AppNotFoundError, UnauthorizedError, ValidationError
from appstore.models.app import App
from appstore.models.download import DOWNLOAD_TYPES, AppDownload
from appstore.schemas.download import PaymentInfo
from appstore.services import profile_service

logger = logging.getLogger(__name__)

_REQUIRED_PAYMENT_FIELDS = ("amount_paid_usd", "amount_paid_zwl", "payment_reference")


@dataclass(frozen=True)
class DownloadResult:
    download: AppDownload
    created: bool


def _validate_payment(kind: str, payment: PaymentInfo | dict | None) -> PaymentInfo | None:
    if kind not in DOWNLOAD_TYPES:
        raise ValidationError(f"Invalid download type: {kind}")

    if isinstance(payment, dict):
        try:
            payment = PaymentInfo.model_validate(payment)
        except ValueError as exc:
            raise ValidationError(f"Invalid payment details: {exc}")

    if kind == "free_download":
        return None

    if payment is None:
        raise ValidationError("Purchase requires payment details")
    missing = [
        field for field in _REQUIRED_PAYMENT_FIELDS
        if getattr(payment, field) in (None, "")
    ]
    if missing:
        raise ValidationError(f"Purchase is missing payment fields: {', '.join(missing)}")
    return payment


async def _find_download(db: AsyncSession, user_id: str, app_id: str) -> AppDownload | None:
    result = await db.execute(
        select(AppDownload).where(AppDownload.user_id == user_id, AppDownload.app_id == app_id)
    )
    return result.scalar_one_or_none()


async def has_downloaded(db: AsyncSession, user_id: str | None, app_id: str) -> bool:
    """True once the user has a ledger row for the app."""
    if not user_id:
        return False
    result = await db.execute(
        select(AppDownload.id).where(AppDownload.user_id == user_id, AppDownload.app_id == app_id)
    )
    return result.first() is not None


async def list_user_downloads(db: AsyncSession, user_id: str) -> list[AppDownload]:
    """The user's download history, most recent first."""
    result = await db.execute(
        select(AppDownload)
        .where(AppDownload.user_id == user_id)
        .order_by(AppDownload.downloaded_at.desc(), AppDownload.id.asc())
    )
    return list(result.scalars().all())


async def record_download(
    db: AsyncSession,
    user_id: str | None,
    app_id: str,
    kind: str,
    payment: PaymentInfo | dict | None = None,
) -> DownloadResult:
    """Record a free download or a paid purchase exactly once per (user, app)."""
    if not user_id:
        raise UnauthorizedError("Sign in to download apps")
    payment = _validate_payment(kind, payment)
    await profile_service.require_profile(db, user_id)

    app = (await db.execute(select(App).where(App.id == app_id))).scalar_one_or_none()
    if app is None:
        raise AppNotFoundError(app_id)

    existing = await _find_download(db, user_id, app_id)
    if existing is not None:
        logger.debug("Re-open of existing download: app=%s user=%s", app_id, user_id)
        return DownloadResult(download=existing, created=False)

    if kind == "free_download" and not app.is_free:
        raise ValidationError(f"App {app_id} is paid; a purchase is required")

    download = AppDownload(
        app_id=app_id,
        app=app,
        user_id=user_id,
        download_type=kind,
        amount_paid_usd=payment.amount_paid_usd if payment else Decimal("0"),
        amount_paid_zwl=payment.amount_paid_zwl if payment else Decimal("0"),
        payment_method=payment.payment_method if payment else None,
        payment_reference=payment.payment_reference if payment else None,
    )
    db.add(download)

    try:
        await db.flush()
        await db.execute(
            update(App)
            .where(App.id == app_id)
            .values(download_count=App.download_count + 1)
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await _find_download(db, user_id, app_id)
        if existing is None:
            raise
        logger.info("Concurrent download for app=%s user=%s resolved to existing row", app_id, user_id)
        return DownloadResult(download=existing, created=False)

    await db.refresh(download)
    logger.info(
        "Download recorded: app=%s user=%s type=%s ref=%s",
        app_id, user_id, kind, download.payment_reference,
    )
    return DownloadResult(download=download, created=True)
