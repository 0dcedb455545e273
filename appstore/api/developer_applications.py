from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.auth import Principal, get_current_principal
from appstore.core.exceptions import ForbiddenError
from appstore.database import get_db
from appstore.schemas.developer_application import (
    ApplicationTransitionRequest,
    DeveloperApplicationCreate,
    DeveloperApplicationListResponse,
    DeveloperApplicationResponse,
)
from appstore.services import application_service

router = APIRouter(prefix="/developer-applications", tags=["developer-applications"])


# ---------------------------------------------------------------------------
# Applicant endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=DeveloperApplicationResponse, status_code=201)
async def submit_application(
    req: DeveloperApplicationCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    application = await application_service.submit_application(db, principal.user_id, req)
    return _application_to_response(application)


@router.get("/me", response_model=DeveloperApplicationListResponse)
async def list_my_applications(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    applications = await application_service.list_applications(db, principal.user_id)
    return DeveloperApplicationListResponse(
        total=len(applications),
        results=[_application_to_response(application) for application in applications],
    )


@router.get("/me/latest", response_model=DeveloperApplicationResponse | None)
async def latest_application(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """The caller's most recent application, or null if they never applied."""
    application = await application_service.get_latest_application(db, principal.user_id)
    if application is None:
        return None
    return _application_to_response(application)


# ---------------------------------------------------------------------------
# Moderator endpoints
# ---------------------------------------------------------------------------

@router.get("/pending", response_model=DeveloperApplicationListResponse)
async def list_pending(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not principal.is_moderator:
        raise ForbiddenError("Moderator role required")
    applications = await application_service.list_pending_applications(db)
    return DeveloperApplicationListResponse(
        total=len(applications),
        results=[_application_to_response(application) for application in applications],
    )


@router.post("/{application_id}/transition", response_model=DeveloperApplicationResponse)
async def transition_application(
    application_id: str,
    req: ApplicationTransitionRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    application = await application_service.transition_application(
        db, application_id, req.status, principal.user_id, principal.role, req.notes,
    )
    return _application_to_response(application)


def _application_to_response(application) -> DeveloperApplicationResponse:
    return DeveloperApplicationResponse(
        id=application.id,
        user_id=application.user_id,
        developer_name=application.developer_name,
        developer_website=application.developer_website,
        developer_bio=application.developer_bio,
        portfolio_links=application_service.portfolio_links(application),
        experience_years=application.experience_years,
        motivation=application.motivation,
        status=application.status,
        reviewed_by=application.reviewed_by,
        reviewed_at=application.reviewed_at,
        notes=application.notes,
        created_at=application.created_at,
    )
