"""Authorization gate — 401 without a session, 403 without the capability.

Learn: The admin gate is a route dependency, so a rejected request never
reaches the handler. The catalog write test proves this by swapping in
a catalog service that records every call.
"""

from datetime import datetime, timezone

import jwt
import pytest

from bizdesk.api.deps import get_catalog_service
from bizdesk.auth.dependencies import ForbiddenError, authorize, get_token_service
from bizdesk.auth.jwt import Claims
from bizdesk.auth.roles import Role
from bizdesk.config import settings
from bizdesk.main import app


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class RecordingCatalog:
    def __init__(self):
        self.calls: list[str] = []

    async def create_article(self, **fields):
        self.calls.append("create_article")
        raise AssertionError("handler must not run")

    async def delete_article(self, article_id):
        self.calls.append("delete_article")
        raise AssertionError("handler must not run")


@pytest.fixture()
def catalog():
    spy = RecordingCatalog()
    app.dependency_overrides[get_catalog_service] = lambda: spy
    yield spy
    app.dependency_overrides.pop(get_catalog_service, None)


ARTICLE = {
    "title": "Pricing a SaaS",
    "category": "finance",
    "format": "guide",
    "summary": "How to set prices",
}


# ═══════════════════════════════════════════════════════════
# authorize()
# ═══════════════════════════════════════════════════════════


def _claims(role: Role) -> Claims:
    now = datetime.now(timezone.utc)
    return Claims(account_id="a", name="n", role=role, issued_at=now, expires_at=now)


def test_authorize_matching_role():
    authorize(_claims(Role.ADMIN), Role.ADMIN)
    authorize(_claims(Role.USER), Role.USER)


def test_authorize_user_lacks_admin():
    with pytest.raises(ForbiddenError):
        authorize(_claims(Role.USER), Role.ADMIN)


def test_authorize_rejects_unknown_capability():
    with pytest.raises(ValueError):
        authorize(_claims(Role.ADMIN), "superuser")


# ═══════════════════════════════════════════════════════════
# Admin routes over HTTP
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_users_requires_token(client):
    r = await client.get("/api/v1/admin/users")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_admin_users_forbidden_for_user(client, make_token):
    r = await client.get("/api/v1/admin/users", headers=_auth(make_token(Role.USER)))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_users_lists_accounts(client, make_token):
    for phone in ("09120000200", "09120000201"):
        await client.post(
            "/api/v1/auth/register",
            json={"name": "Sara", "phone": phone, "password": "s3cret-pass"},
        )

    r = await client.get("/api/v1/admin/users", headers=_auth(make_token(Role.ADMIN)))
    assert r.status_code == 200
    rows = r.json()
    assert {row["phone"] for row in rows} == {"09120000200", "09120000201"}
    # Summary rows carry no profile payloads or secrets
    assert all("okrs_data" not in row and "password_hash" not in row for row in rows)


@pytest.mark.asyncio
async def test_unknown_role_in_token_is_unauthenticated(client):
    forged = jwt.encode(
        {"sub": "a", "name": "n", "role": "superuser", "iat": 0, "exp": 4102444800},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    r = await client.get("/api/v1/admin/users", headers=_auth(forged))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_token_from_other_secret_rejected(client):
    forged = jwt.encode(
        {"sub": "a", "name": "n", "role": "admin", "iat": 0, "exp": 4102444800},
        "not-the-server-secret-0123456789abcdef0123",
        algorithm="HS256",
    )
    r = await client.get("/api/v1/admin/users", headers=_auth(forged))
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Gate runs before the handler
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_article_write_forbidden_before_handler(client, catalog, make_token):
    r = await client.post(
        "/api/v1/articles", json=ARTICLE, headers=_auth(make_token(Role.USER))
    )
    assert r.status_code == 403
    assert catalog.calls == []


@pytest.mark.asyncio
async def test_article_delete_without_token(client, catalog):
    r = await client.delete("/api/v1/articles/1")
    assert r.status_code == 401
    assert catalog.calls == []


@pytest.mark.asyncio
async def test_review_write_forbidden_for_user(client, catalog, make_token):
    r = await client.post(
        "/api/v1/reviews",
        json={"product_name": "Trello", "category": "project-management"},
        headers=_auth(make_token(Role.USER)),
    )
    assert r.status_code == 403


def test_token_service_is_process_wide():
    assert get_token_service() is get_token_service()
