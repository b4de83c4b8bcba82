"""
Tests for the administrative HTTP API.

Requests go through the real application with ``get_db`` bound to the
in-memory test database.
"""
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from bnrm_access.crud.audit_log import AuditLogRepository
from bnrm_access.crud.user_role import UserRoleRepository
from bnrm_access.dependencies import get_db
from bnrm_access.main import app
from scripts.seed_access_catalog import seed_access_catalog

from tests.helpers import auth_headers, make_token

ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
LIBRARIAN_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")


@pytest.fixture
async def seeded(session):
    await seed_access_catalog(session, admin_user_id=ADMIN_ID)
    await UserRoleRepository(session).assign(LIBRARIAN_ID, "librarian")
    await session.commit()


@pytest.fixture
async def client(session_factory, seeded, monkeypatch):
    async def override_get_db():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr("bnrm_access.services.audit_service.AsyncSessionLocal", session_factory)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin():
    return auth_headers(ADMIN_ID)


async def permission_id(client: httpx.AsyncClient, admin: dict, name: str) -> str:
    response = await client.get("/api/admin/permissions", headers=admin)
    return next(item["id"] for item in response.json() if item["name"] == name)


class TestAuthentication:
    @pytest.mark.anyio
    async def test_missing_token(self, client):
        response = await client.get("/api/admin/roles")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_ERROR"

    @pytest.mark.anyio
    async def test_invalid_token(self, client):
        response = await client.get("/api/admin/roles", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    @pytest.mark.anyio
    async def test_expired_token(self, client):
        token = make_token(ADMIN_ID, exp=datetime.now(timezone.utc) - timedelta(minutes=5))
        response = await client.get("/api/admin/roles", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Token has expired"

    @pytest.mark.anyio
    async def test_wrong_audience(self, client):
        token = make_token(ADMIN_ID, aud="anon")
        response = await client.get("/api/admin/roles", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.anyio
    async def test_missing_permission_is_forbidden_and_audited(self, client, session_factory):
        response = await client.post(
            "/api/admin/roles",
            json={"name": "X", "code": "x_role", "category": "users"},
            headers=auth_headers(LIBRARIAN_ID),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"
        async with session_factory() as db:
            [entry] = await AuditLogRepository(db).list_entries(action="permission_denied")
        assert entry.actor_id == LIBRARIAN_ID
        assert entry.entity_id == "users.manage_roles"


class TestCatalogEndpoints:
    @pytest.mark.anyio
    async def test_list_permissions(self, client, admin):
        response = await client.get("/api/admin/permissions", headers=admin)
        assert response.status_code == 200
        names = [item["name"] for item in response.json()]
        assert "collections.edit" in names
        assert names.index("collections.create") < names.index("collections.edit")

    @pytest.mark.anyio
    async def test_list_permissions_by_category(self, client, admin):
        response = await client.get("/api/admin/permissions", params={"category": "exhibitions"}, headers=admin)
        assert [item["name"] for item in response.json()] == ["exhibitions.manage", "exhibitions.view"]

        response = await client.get("/api/admin/permissions", params={"category": "weather"}, headers=admin)
        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.anyio
    async def test_list_categories(self, client, admin):
        response = await client.get("/api/admin/permissions/categories", headers=admin)
        categories = {item["code"]: item for item in response.json()}
        assert len(categories) == 15
        assert categories["legal_deposit"]["label"] == "Dépôt Légal"
        assert categories["legal_deposit"]["group"] == "Bibliothèque & Collections"
        assert categories["exhibitions"]["permission_count"] == 2


class TestRoleEndpoints:
    @pytest.mark.anyio
    async def test_list_roles(self, client, admin):
        response = await client.get("/api/admin/roles", headers=admin)
        assert response.status_code == 200
        roles = response.json()
        assert len(roles) == 16
        assert roles[0]["code"] == "admin"
        assert roles[0]["category_label"] == "Rôles Administratifs"
        assert all(role["is_system"] for role in roles)

    @pytest.mark.anyio
    async def test_role_lifecycle(self, client, admin):
        created = await client.post(
            "/api/admin/roles",
            json={
                "name": "Gestionnaire de contenu",
                "code": "Content Manager",
                "description": "Gère les pages éditoriales",
                "category": "library",
                "permission_ids": [await permission_id(client, admin, "content.edit")],
            },
            headers=admin,
        )
        assert created.status_code == 201
        body = created.json()
        assert body["migration_required"] is True
        assert body["migration_sql"] == "ALTER TYPE public.user_role ADD VALUE 'content_manager';"
        assert body["role"]["is_active"] is False
        role_id = body["role"]["id"]

        listed = await client.get("/api/admin/roles", headers=admin)
        assert "content_manager" not in {role["code"] for role in listed.json()}

        published = await client.post(f"/api/admin/roles/{role_id}/publish", headers=admin)
        assert published.status_code == 200
        assert published.json()["is_active"] is True

        fetched = await client.get("/api/admin/roles/content_manager", headers=admin)
        assert fetched.json()["source"] == "dynamic"

        deleted = await client.delete("/api/admin/roles/content_manager", headers=admin)
        assert deleted.status_code == 200
        assert deleted.json()["is_active"] is False
        listed = await client.get("/api/admin/roles", headers=admin)
        assert "content_manager" not in {role["code"] for role in listed.json()}

    @pytest.mark.anyio
    async def test_invalid_role_code(self, client, admin):
        response = await client.post(
            "/api/admin/roles",
            json={"name": "X", "code": "12 monkeys", "category": "users"},
            headers=admin,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.anyio
    async def test_enum_role_cannot_be_deleted(self, client, admin):
        response = await client.delete("/api/admin/roles/librarian", headers=admin)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.anyio
    async def test_unknown_role(self, client, admin):
        assert (await client.get("/api/admin/roles/ghost", headers=admin)).status_code == 404
        assert (await client.delete("/api/admin/roles/ghost", headers=admin)).status_code == 404
        publish = await client.post(f"/api/admin/roles/{uuid.uuid4()}/publish", headers=admin)
        assert publish.status_code == 404


class TestGrantEndpoints:
    @pytest.mark.anyio
    async def test_get_and_toggle_grant(self, client, admin):
        target = await permission_id(client, admin, "payments.refund")

        response = await client.put(
            f"/api/admin/roles/visitor/grants/{target}", json={"granted": True}, headers=admin
        )
        assert response.status_code == 200
        assert response.json() == {"role": "visitor", "permission_id": target, "granted": True}

        grants = (await client.get("/api/admin/roles/visitor/grants", headers=admin)).json()
        assert next(g for g in grants if g["name"] == "payments.refund")["granted"] is True

        await client.put(f"/api/admin/roles/visitor/grants/{target}", json={"granted": False}, headers=admin)
        grants = (await client.get("/api/admin/roles/visitor/grants", headers=admin)).json()
        assert next(g for g in grants if g["name"] == "payments.refund")["granted"] is False

    @pytest.mark.anyio
    async def test_category_grants(self, client, admin):
        response = await client.put(
            "/api/admin/roles/visitor/categories/payments", json={"granted": True}, headers=admin
        )
        assert response.status_code == 200
        assert len(response.json()) == 3

        invalid = await client.put(
            "/api/admin/roles/visitor/categories/weather", json={"granted": True}, headers=admin
        )
        assert invalid.status_code == 400

    @pytest.mark.anyio
    async def test_unknown_role_grants(self, client, admin):
        response = await client.get("/api/admin/roles/ghost/grants", headers=admin)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestOverrideAndUserEndpoints:
    @pytest.mark.anyio
    async def test_override_lifecycle(self, client, admin):
        target = await permission_id(client, admin, "collections.edit")
        me = await client.get("/api/admin/me/permissions", headers=auth_headers(LIBRARIAN_ID))
        assert "collections.edit" in me.json()["permissions"]

        created = await client.post(
            "/api/admin/overrides",
            json={
                "user_id": str(LIBRARIAN_ID),
                "permission_id": target,
                "granted": False,
                "reason": "Inventaire en cours",
                "expires_at": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
            },
            headers=admin,
        )
        assert created.status_code == 201
        override = created.json()
        assert override["permission_name"] == "collections.edit"
        assert override["is_expired"] is False

        me = await client.get("/api/admin/me/permissions", headers=auth_headers(LIBRARIAN_ID))
        assert "collections.edit" not in me.json()["permissions"]

        listed = await client.get("/api/admin/overrides", params={"user_id": str(LIBRARIAN_ID)}, headers=admin)
        assert [item["id"] for item in listed.json()] == [override["id"]]

        deleted = await client.delete(f"/api/admin/overrides/{override['id']}", headers=admin)
        assert deleted.status_code == 204
        again = await client.delete(f"/api/admin/overrides/{override['id']}", headers=admin)
        assert again.status_code == 404

        me = await client.get("/api/admin/me/permissions", headers=auth_headers(LIBRARIAN_ID))
        assert "collections.edit" in me.json()["permissions"]

    @pytest.mark.anyio
    async def test_naive_expiry_is_rejected(self, client, admin):
        response = await client.post(
            "/api/admin/overrides",
            json={
                "user_id": str(LIBRARIAN_ID),
                "permission_id": await permission_id(client, admin, "collections.edit"),
                "granted": True,
                "expires_at": "2099-01-01T00:00:00",
            },
            headers=admin,
        )
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_assign_role_and_explain(self, client, admin):
        user_id = uuid.uuid4()
        assert (await client.get(f"/api/admin/users/{user_id}/role", headers=admin)).status_code == 404

        assigned = await client.put(f"/api/admin/users/{user_id}/role", json={"role": "dac"}, headers=admin)
        assert assigned.status_code == 200
        assert assigned.json()["role"] == "dac"
        assert assigned.json()["granted_by"] == str(ADMIN_ID)

        role = await client.get(f"/api/admin/users/{user_id}/role", headers=admin)
        assert role.json() == {"role": "dac"}

        explained = await client.get(f"/api/admin/users/{user_id}/permissions", headers=admin)
        body = explained.json()
        assert body["role"] == "dac"
        assert "exhibitions.manage" in body["permissions"]
        sources = {decision["name"]: decision["source"] for decision in body["decisions"]}
        assert sources["exhibitions.manage"] == "role"
        assert sources["payments.refund"] == "default"

    @pytest.mark.anyio
    async def test_assign_unknown_role(self, client, admin):
        response = await client.put(f"/api/admin/users/{uuid.uuid4()}/role", json={"role": "ghost"}, headers=admin)
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_me_without_role_is_empty(self, client):
        response = await client.get("/api/admin/me/permissions", headers=auth_headers(uuid.uuid4()))
        assert response.status_code == 200
        assert response.json()["permissions"] == []


class TestAuditEndpoint:
    @pytest.mark.anyio
    async def test_changes_are_listed_newest_first(self, client, admin):
        created = await client.post(
            "/api/admin/roles",
            json={"name": "Archiviste", "code": "archivist", "category": "library"},
            headers=admin,
        )
        role_id = created.json()["role"]["id"]
        await client.post(f"/api/admin/roles/{role_id}/publish", headers=admin)

        response = await client.get(
            "/api/admin/audit", params={"entity_type": "role", "entity_id": role_id}, headers=admin
        )
        assert response.status_code == 200
        entries = response.json()
        assert [entry["action"] for entry in entries] == ["role.update", "role.create"]
        assert all(entry["actor_id"] == str(ADMIN_ID) for entry in entries)
        assert entries[1]["after"]["role_code"] == "archivist"

    @pytest.mark.anyio
    async def test_filter_by_action(self, client, admin):
        await client.get("/api/admin/roles", headers=auth_headers(LIBRARIAN_ID))

        response = await client.get(
            "/api/admin/audit", params={"action": "permission_denied"}, headers=admin
        )
        [entry] = response.json()
        assert entry["actor_id"] == str(LIBRARIAN_ID)
        assert entry["entity_id"] == "users.manage_permissions"

    @pytest.mark.anyio
    async def test_requires_manage_permissions(self, client):
        response = await client.get("/api/admin/audit", headers=auth_headers(LIBRARIAN_ID))
        assert response.status_code == 403
