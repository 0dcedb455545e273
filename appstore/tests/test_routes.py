"""Test suite for the app store HTTP API.

Tests cover:
- GET /, GET /api/v1/health
- GET /api/v1/apps, GET /api/v1/apps/{id_or_slug}, GET /api/v1/categories
- PUT/GET /api/v1/apps/{id}/reviews (with the caller's own review), DELETE /api/v1/reviews/{id}
- Valid token without a profile row: 404 before any write
- POST /api/v1/apps/{id}/downloads, GET /api/v1/apps/{id}/downloads/me, GET /api/v1/downloads/me
- /api/v1/developer-applications workflow
- GET /api/v1/developers/{id}/summary, POST /api/v1/admin/ratings/reconcile
- Error mapping for store outages
"""

import pytest
from sqlalchemy.exc import OperationalError

from appstore.core.auth import create_access_token
from appstore.services import catalog_service

FORM = {
    "developer_name": "Acme Apps",
    "developer_bio": "We build small, useful tools.",
    "portfolio_links": ["https://github.com/acme"],
    "motivation": "Ship our budgeting app.",
}


@pytest.fixture
async def listed_app(catalog_owner, make_app):
    developer, category, _ = catalog_owner
    return await make_app(
        developer.id, category.id, name="Budget Pro", slug="budget-pro",
        screenshots=[(1, "https://cdn.test/2.png"), (0, "https://cdn.test/1.png")],
    )


# ── Root and health ─────────────────────────────────────────────────────

async def test_root_sets_security_headers(client):
    resp = await client.get("/")

    assert resp.status_code == 200
    assert resp.json()["health"] == "/api/v1/health"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


async def test_health_counts(client, listed_app):
    resp = await client.get("/api/v1/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["apps_count"] == 1
    assert data["published_apps_count"] == 1
    assert data["reviews_count"] == 0


# ── Catalog ─────────────────────────────────────────────────────────────

async def test_list_apps(client, listed_app, catalog_owner, make_app):
    developer, category, _ = catalog_owner
    await make_app(developer.id, category.id, status="draft")

    resp = await client.get("/api/v1/apps")

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    app = data["results"][0]
    assert app["slug"] == "budget-pro"
    assert app["developer"]["full_name"] == "Dev One"
    assert app["category"]["slug"] == "productivity"
    assert [shot["sort_order"] for shot in app["screenshots"]] == [0, 1]


async def test_list_apps_filter_query(client, listed_app):
    resp = await client.get(
        "/api/v1/apps", params={"category": "productivity", "min_rating": 4, "sort_by": "name"},
    )

    assert resp.status_code == 200
    assert resp.json()["total"] == 0


async def test_list_apps_invalid_sort(client):
    resp = await client.get("/api/v1/apps", params={"sort_by": "cheapest"})

    assert resp.status_code == 422
    assert "sort_by" in resp.json()["detail"]


async def test_get_app_by_slug(client, listed_app):
    resp = await client.get("/api/v1/apps/budget-pro")

    assert resp.status_code == 200
    assert resp.json()["id"] == listed_app.id
    assert resp.json()["rating_display"] == 0.0


async def test_get_app_not_found(client):
    resp = await client.get("/api/v1/apps/nope")

    assert resp.status_code == 404


async def test_list_categories(client, make_category):
    await make_category("Finance", sort_order=1)
    await make_category("Games", sort_order=0)

    resp = await client.get("/api/v1/categories")

    assert resp.status_code == 200
    assert [category["slug"] for category in resp.json()] == ["games", "finance"]


async def test_developer_summary(client, listed_app, catalog_owner):
    developer, _, _ = catalog_owner

    resp = await client.get(f"/api/v1/developers/{developer.id}/summary")

    assert resp.status_code == 200
    assert resp.json()["apps_count"] == 1
    assert resp.json()["published_count"] == 1


# ── Reviews ─────────────────────────────────────────────────────────────

async def test_review_requires_auth(client, listed_app):
    resp = await client.put(f"/api/v1/apps/{listed_app.id}/reviews", json={"rating": 5})

    assert resp.status_code == 401


async def test_review_submit_list_delete(client, listed_app, make_profile, auth_header):
    user, token = await make_profile(full_name="Rita Reviewer")
    other, other_token = await make_profile()

    resp = await client.put(
        f"/api/v1/apps/{listed_app.id}/reviews",
        json={"rating": 4, "title": "Good"},
        headers=auth_header(token),
    )
    assert resp.status_code == 200
    review = resp.json()
    assert review["rating"] == 4
    assert review["user"]["full_name"] == "Rita Reviewer"
    assert review["is_verified_purchase"] is False

    resp = await client.get(f"/api/v1/apps/{listed_app.id}/reviews")
    assert resp.status_code == 200
    assert resp.json()["total"] == 1
    assert resp.json()["rating_average"] == 4.0
    assert resp.json()["rating_count"] == 1

    resp = await client.delete(f"/api/v1/reviews/{review['id']}", headers=auth_header(other_token))
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/reviews/{review['id']}", headers=auth_header(token))
    assert resp.status_code == 200
    assert resp.json()["rating_count"] == 0


async def test_review_out_of_range(client, listed_app, make_profile, auth_header):
    _, token = await make_profile()

    resp = await client.put(
        f"/api/v1/apps/{listed_app.id}/reviews", json={"rating": 7}, headers=auth_header(token),
    )

    assert resp.status_code == 422


async def test_review_list_includes_callers_own_review(client, listed_app, make_profile, auth_header):
    user, token = await make_profile()
    _, other_token = await make_profile()
    await client.put(
        f"/api/v1/apps/{listed_app.id}/reviews", json={"rating": 3}, headers=auth_header(token),
    )

    resp = await client.get(f"/api/v1/apps/{listed_app.id}/reviews", headers=auth_header(token))
    assert resp.status_code == 200
    assert resp.json()["my_review"]["user_id"] == user.id
    assert resp.json()["my_review"]["rating"] == 3

    resp = await client.get(f"/api/v1/apps/{listed_app.id}/reviews", headers=auth_header(other_token))
    assert resp.json()["my_review"] is None

    resp = await client.get(f"/api/v1/apps/{listed_app.id}/reviews")
    assert resp.json()["my_review"] is None
    assert resp.json()["total"] == 1


async def test_review_with_bad_token_still_lists(client, listed_app):
    resp = await client.get(
        f"/api/v1/apps/{listed_app.id}/reviews", headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert resp.status_code == 200
    assert resp.json()["my_review"] is None


async def test_review_without_profile_is_404(client, listed_app, auth_header):
    token = create_access_token("no-such-user")

    resp = await client.put(
        f"/api/v1/apps/{listed_app.id}/reviews", json={"rating": 5}, headers=auth_header(token),
    )

    assert resp.status_code == 404


# ── Downloads ───────────────────────────────────────────────────────────

async def test_download_then_reopen(client, listed_app, make_profile, auth_header):
    _, token = await make_profile()
    url = f"/api/v1/apps/{listed_app.id}/downloads"

    first = await client.post(url, json={"download_type": "free_download"}, headers=auth_header(token))
    second = await client.post(url, json={"download_type": "free_download"}, headers=auth_header(token))

    assert first.status_code == 201
    assert first.json()["created"] is True
    assert first.json()["app"]["slug"] == "budget-pro"
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["id"] == first.json()["id"]

    resp = await client.get(f"/api/v1/apps/{listed_app.id}", headers=auth_header(token))
    assert resp.json()["download_count"] == 1

    resp = await client.get(f"{url}/me", headers=auth_header(token))
    assert resp.json() == {"app_id": listed_app.id, "downloaded": True}

    resp = await client.get("/api/v1/downloads/me", headers=auth_header(token))
    assert [row["app_id"] for row in resp.json()] == [listed_app.id]


async def test_purchase_without_payment(client, catalog_owner, make_app, make_profile, auth_header):
    developer, category, _ = catalog_owner
    paid = await make_app(developer.id, category.id, price_usd=1.99)
    _, token = await make_profile()

    resp = await client.post(
        f"/api/v1/apps/{paid.id}/downloads",
        json={"download_type": "purchase"},
        headers=auth_header(token),
    )

    assert resp.status_code == 422


async def test_download_without_profile_is_404(client, listed_app, auth_header):
    token = create_access_token("no-such-user")

    resp = await client.post(
        f"/api/v1/apps/{listed_app.id}/downloads",
        json={"download_type": "free_download"},
        headers=auth_header(token),
    )

    assert resp.status_code == 404
    assert "sign-up" in resp.json()["detail"]
    resp = await client.get(f"/api/v1/apps/{listed_app.id}")
    assert resp.json()["download_count"] == 0


async def test_download_requires_auth(client, listed_app):
    resp = await client.post(
        f"/api/v1/apps/{listed_app.id}/downloads", json={"download_type": "free_download"},
    )

    assert resp.status_code == 401


# ── Developer applications ──────────────────────────────────────────────

async def test_application_workflow(client, make_profile, auth_header):
    applicant, token = await make_profile()
    _, admin_token = await make_profile(role="admin")

    resp = await client.get("/api/v1/developer-applications/me/latest", headers=auth_header(token))
    assert resp.status_code == 200
    assert resp.json() is None

    resp = await client.post("/api/v1/developer-applications", json=FORM, headers=auth_header(token))
    assert resp.status_code == 201
    application = resp.json()
    assert application["status"] == "pending"
    assert application["portfolio_links"] == ["https://github.com/acme"]

    resp = await client.post("/api/v1/developer-applications", json=FORM, headers=auth_header(token))
    assert resp.status_code == 409
    assert resp.json()["detail"]["current_status"] == "pending"

    resp = await client.get("/api/v1/developer-applications/pending", headers=auth_header(token))
    assert resp.status_code == 403

    resp = await client.get("/api/v1/developer-applications/pending", headers=auth_header(admin_token))
    assert resp.status_code == 200
    assert resp.json()["total"] == 1

    transition_url = f"/api/v1/developer-applications/{application['id']}/transition"
    resp = await client.post(
        transition_url, json={"status": "approved"}, headers=auth_header(token),
    )
    assert resp.status_code == 403

    resp = await client.post(
        transition_url, json={"status": "rejected", "notes": "Needs work"}, headers=auth_header(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"

    resp = await client.post(
        transition_url, json={"status": "approved"}, headers=auth_header(admin_token),
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["current_status"] == "rejected"

    resp = await client.get("/api/v1/developer-applications/me", headers=auth_header(token))
    assert resp.json()["total"] == 1
    assert resp.json()["results"][0]["notes"] == "Needs work"


# ── Admin ───────────────────────────────────────────────────────────────

async def test_reconcile_requires_moderator(client, make_profile, auth_header):
    _, token = await make_profile()

    resp = await client.post("/api/v1/admin/ratings/reconcile", headers=auth_header(token))

    assert resp.status_code == 403


async def test_reconcile_reports_drift(client, catalog_owner, make_app, make_profile, auth_header):
    developer, category, _ = catalog_owner
    await make_app(developer.id, category.id, rating_average=3.0, rating_count=2)
    _, admin_token = await make_profile(role="admin")

    resp = await client.post("/api/v1/admin/ratings/reconcile", headers=auth_header(admin_token))

    assert resp.status_code == 200
    assert resp.json()["checked"] == 1
    assert resp.json()["repaired"] == 1


# ── Store outages ───────────────────────────────────────────────────────

async def test_store_outage_maps_to_retryable_503(client, monkeypatch):
    async def _down(db, filters=None):
        raise OperationalError("SELECT apps", {}, Exception("connection refused"))

    monkeypatch.setattr(catalog_service, "list_apps", _down)

    resp = await client.get("/api/v1/apps")

    assert resp.status_code == 503
    assert resp.json()["detail"]["retryable"] is True
