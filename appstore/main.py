import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from appstore.core.async_tasks import drain_background_tasks
from appstore.core.exceptions import TransientGatewayError
from appstore.database import dispose_engine, init_db
from appstore.models import *  # noqa: F403

APP_VERSION = "0.1.0"
logger = logging.getLogger(__name__)

_SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: create tables
    await init_db()
    logger.info("App store API %s started", APP_VERSION)

    yield

    # Shutdown: let promotions and other side effects finish
    await drain_background_tasks(timeout_seconds=5.0)
    await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        return response


async def _store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    """Map connection-level store failures to a 503 the client may retry."""
    logger.error("Data store unavailable during %s %s: %s", request.method, request.url.path, exc)
    error = TransientGatewayError(retryable=request.method in _SAFE_METHODS)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


def create_app() -> FastAPI:
    from appstore.config import settings, validate_security_posture

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    validate_security_posture(settings)

    app = FastAPI(
        title="App Store",
        description="Catalog, reviews, downloads and developer onboarding",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    # CORS configurable via CORS_ORIGINS env var
    allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(OperationalError, _store_unavailable)
    app.add_exception_handler(InterfaceError, _store_unavailable)

    # Register REST routers
    from appstore.api import API_PREFIX, API_ROUTERS

    for router in API_ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": "App Store",
            "version": APP_VERSION,
            "docs": "/docs",
            "health": f"{API_PREFIX}/health",
        }

    return app


app = create_app()
