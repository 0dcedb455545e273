"""Developer onboarding: submit an application, moderators approve or reject it.

State machine::

    pending -> approved   (terminal; triggers profile promotion)
    pending -> rejected   (terminal)

Whether a user may apply again after a rejection is the explicit setting
``allow_resubmission_after_rejection``. A pending or approved application
always blocks a new one, and the store's partial unique index guarantees at
most one pending application per user even under concurrent submissions.
"""

import json
import logging
from datetime import datetime, timezone

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from appstore import database
from appstore.config import settings
from appstore.core.async_tasks import fire_and_forget
from appstore.core.auth import is_moderator
from appstore.core.exceptions import (
    ApplicationExistsError,
    ApplicationNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    UnauthorizedError,
    ValidationError,
)
from appstore.models.developer_application import DeveloperApplication
from appstore.schemas.developer_application import DeveloperApplicationCreate
from appstore.services import profile_service

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("approved", "rejected")
_REQUIRED_FIELDS = ("developer_name", "developer_bio", "motivation")


def portfolio_links(application: DeveloperApplication) -> list[str]:
    raw = application.portfolio_links
    if isinstance(raw, str):
        return json.loads(raw or "[]")
    return list(raw or [])


def _coerce(data: DeveloperApplicationCreate | dict) -> DeveloperApplicationCreate:
    if isinstance(data, DeveloperApplicationCreate):
        return data
    try:
        return DeveloperApplicationCreate.model_validate(data)
    except SchemaValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ValidationError(f"Invalid application fields: {', '.join(fields)}")


def _blocks_new_application(latest: DeveloperApplication | None) -> bool:
    if latest is None:
        return False
    if latest.status == "rejected":
        return not settings.allow_resubmission_after_rejection
    return True


async def list_applications(db: AsyncSession, user_id: str) -> list[DeveloperApplication]:
    """All of a user's applications, newest first."""
    result = await db.execute(
        select(DeveloperApplication)
        .where(DeveloperApplication.user_id == user_id)
        .order_by(DeveloperApplication.created_at.desc(), DeveloperApplication.id.desc())
    )
    return list(result.scalars().all())


async def get_latest_application(db: AsyncSession, user_id: str) -> DeveloperApplication | None:
    """The most recently created application; this one is authoritative for display."""
    result = await db.execute(
        select(DeveloperApplication)
        .where(DeveloperApplication.user_id == user_id)
        .order_by(DeveloperApplication.created_at.desc(), DeveloperApplication.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def has_application(db: AsyncSession, user_id: str) -> bool:
    count = (
        await db.execute(
            select(func.count(DeveloperApplication.id)).where(DeveloperApplication.user_id == user_id)
        )
    ).scalar() or 0
    return count > 0


async def list_pending_applications(db: AsyncSession) -> list[DeveloperApplication]:
    """Moderation queue, oldest first."""
    result = await db.execute(
        select(DeveloperApplication)
        .where(DeveloperApplication.status == "pending")
        .order_by(DeveloperApplication.created_at.asc(), DeveloperApplication.id.asc())
    )
    return list(result.scalars().all())


async def submit_application(
    db: AsyncSession,
    user_id: str | None,
    data: DeveloperApplicationCreate | dict,
) -> DeveloperApplication:
    """Create a pending application for *user_id*."""
    if not user_id:
        raise UnauthorizedError("Sign in to apply as a developer")
    data = _coerce(data)

    blank = [name for name in _REQUIRED_FIELDS if not getattr(data, name).strip()]
    if blank:
        raise ValidationError(f"Missing required fields: {', '.join(blank)}")
    await profile_service.require_profile(db, user_id)

    latest = await get_latest_application(db, user_id)
    if _blocks_new_application(latest):
        raise ApplicationExistsError(latest.status)

    links = [link.strip() for link in data.portfolio_links if link and link.strip()]
    application = DeveloperApplication(
        user_id=user_id,
        developer_name=data.developer_name.strip(),
        developer_website=(data.developer_website or "").strip() or None,
        developer_bio=data.developer_bio.strip(),
        portfolio_links=json.dumps(links),
        experience_years=data.experience_years,
        motivation=data.motivation.strip(),
        status="pending",
    )
    db.add(application)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        latest = await get_latest_application(db, user_id)
        if latest is None:
            raise
        raise ApplicationExistsError(latest.status)
    await db.refresh(application)

    logger.info("Developer application submitted: %s (user=%s)", application.id, user_id)
    return application


async def _promote_applicant(application_id: str) -> None:
    async with database.async_session() as session:
        await profile_service.promote_to_developer(session, application_id)


async def transition_application(
    db: AsyncSession,
    application_id: str,
    new_status: str,
    moderator_id: str | None,
    moderator_role: str | None,
    notes: str | None = None,
) -> DeveloperApplication:
    """Moderator decision on a pending application."""
    if not is_moderator(moderator_id, moderator_role):
        raise ForbiddenError("Moderator role required")
    if new_status not in TERMINAL_STATUSES:
        raise ValidationError(f"Applications can only be moved to {' or '.join(TERMINAL_STATUSES)}")

    stmt = select(DeveloperApplication).where(DeveloperApplication.id == application_id)
    if not database.is_sqlite:
        stmt = stmt.with_for_update()
    application = (await db.execute(stmt)).scalar_one_or_none()
    if application is None:
        raise ApplicationNotFoundError(application_id)
    if application.status != "pending":
        raise InvalidTransitionError(application.status, new_status)

    application.status = new_status
    application.reviewed_by = moderator_id
    application.reviewed_at = datetime.now(timezone.utc)
    application.notes = (notes or "").strip() or None
    await db.commit()
    await db.refresh(application)

    logger.info(
        "Developer application %s -> %s by %s", application.id, new_status, moderator_id,
    )
    if new_status == "approved":
        fire_and_forget(
            _promote_applicant(application.id),
            task_name=f"promote_applicant_{application.id}",
        )
    return application
