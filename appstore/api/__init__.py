"""API router registry used by the app factory.

Route module imports and inclusion order live here so `appstore.main`
stays focused on startup wiring.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import admin, apps, categories, developer_applications, developers, downloads, health, reviews

API_PREFIX = "/api/v1"

API_ROUTERS: tuple[APIRouter, ...] = (
    health.router,
    categories.router,
    apps.router,
    reviews.router,
    downloads.router,
    developers.router,
    developer_applications.router,
    admin.router,
)

__all__ = ["API_PREFIX", "API_ROUTERS"]
