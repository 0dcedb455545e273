"""Profile lookups, and profile updates triggered by other workflows."""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.exceptions import ProfileNotFoundError
from appstore.models.developer_application import DeveloperApplication
from appstore.models.profile import Profile

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def require_profile(db: AsyncSession, user_id: str) -> Profile:
    """The caller's profile. Rows keyed by user id reference it, so writes need it to exist."""
    profile = await get_profile(db, user_id)
    if profile is None:
        raise ProfileNotFoundError(user_id)
    return profile


async def promote_to_developer(db: AsyncSession, application_id: str) -> Profile | None:
    """Give the applicant the developer role and copy their public developer details.

    Admins keep their role. Returns ``None`` when the application or the
    profile no longer exists.
    """
    application = (
        await db.execute(
            select(DeveloperApplication).where(DeveloperApplication.id == application_id)
        )
    ).scalar_one_or_none()
    if application is None or application.status != "approved":
        logger.warning("Skipping promotion: application %s is not approved", application_id)
        return None

    profile = await get_profile(db, application.user_id)
    if profile is None:
        logger.warning("Skipping promotion: no profile for user %s", application.user_id)
        return None

    if profile.role != "admin":
        profile.role = "developer"
    profile.developer_name = application.developer_name
    profile.developer_website = application.developer_website
    profile.developer_bio = application.developer_bio
    profile.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(profile)

    logger.info("Profile promoted to developer: %s (application %s)", profile.id, application_id)
    return profile
