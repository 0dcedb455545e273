from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from appstore.core.auth import Principal, get_current_principal
from appstore.database import get_db
from appstore.schemas.download import (
    DownloadedAppSummary,
    DownloadRequest,
    DownloadResponse,
    HasDownloadedResponse,
)
from appstore.services import download_service

router = APIRouter(tags=["downloads"])


@router.post("/apps/{app_id}/downloads", response_model=DownloadResponse, status_code=201)
async def record_download(
    app_id: str,
    req: DownloadRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Record a free download or purchase. A repeat call returns the existing row with 200."""
    result = await download_service.record_download(
        db, principal.user_id, app_id, req.download_type, req.payment,
    )
    response = _download_to_response(result.download, created=result.created)
    if not result.created:
        return JSONResponse(status_code=200, content=response.model_dump(mode="json"))
    return response


@router.get("/apps/{app_id}/downloads/me", response_model=HasDownloadedResponse)
async def has_downloaded(
    app_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    downloaded = await download_service.has_downloaded(db, principal.user_id, app_id)
    return HasDownloadedResponse(app_id=app_id, downloaded=downloaded)


@router.get("/downloads/me", response_model=list[DownloadResponse])
async def list_my_downloads(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    downloads = await download_service.list_user_downloads(db, principal.user_id)
    return [_download_to_response(download) for download in downloads]


def _download_to_response(download, created: bool = True) -> DownloadResponse:
    app_summary = None
    if download.app:
        app_summary = DownloadedAppSummary(
            id=download.app.id,
            name=download.app.name,
            slug=download.app.slug,
            icon_url=download.app.icon_url,
            version=download.app.version,
        )
    return DownloadResponse(
        id=download.id,
        app_id=download.app_id,
        user_id=download.user_id,
        download_type=download.download_type,
        amount_paid_usd=float(download.amount_paid_usd or 0),
        amount_paid_zwl=float(download.amount_paid_zwl or 0),
        payment_method=download.payment_method,
        payment_reference=download.payment_reference,
        downloaded_at=download.downloaded_at,
        created=created,
        app=app_summary,
    )
