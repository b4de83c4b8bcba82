"""Tests for role-permission grants."""
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from bnrm_access.errors import NotFoundError, ValidationError
from bnrm_access.models import RolePermission
from bnrm_access.services.grant_service import GrantService
from bnrm_access.services.role_service import RoleService


def granted_names(grants) -> set[str]:
    return {grant.permission.name for grant in grants if grant.granted}


class TestGrantService:
    @pytest.mark.anyio
    async def test_grants_cover_whole_catalog(self, session, catalog):
        grants = await GrantService(session).get_grants("visitor")

        assert len(grants) == len(catalog)
        assert granted_names(grants) == set()

    @pytest.mark.anyio
    async def test_set_grant_then_revoke_leaves_no_grant(self, session, catalog):
        service = GrantService(session)
        permission_id = catalog["collections.edit"].id

        await service.set_grant("librarian", permission_id, True)
        assert "collections.edit" in granted_names(await service.get_grants("librarian"))

        await service.set_grant("librarian", permission_id, False)
        assert "collections.edit" not in granted_names(await service.get_grants("librarian"))

        rows = (await session.execute(
            select(func.count(RolePermission.id)).where(RolePermission.role == "librarian")
        )).scalar_one()
        assert rows == 1

    @pytest.mark.anyio
    async def test_set_grant_is_idempotent(self, session, catalog):
        service = GrantService(session)
        permission_id = catalog["content.view"].id

        first = await service.set_grant("visitor", permission_id, True)
        second = await service.set_grant("visitor", permission_id, True)

        assert first.id == second.id
        assert second.granted is True

    @pytest.mark.anyio
    async def test_unknown_role_or_permission(self, session, catalog):
        service = GrantService(session)
        with pytest.raises(NotFoundError, match="Role 'ghost' not found"):
            await service.get_grants("ghost")
        with pytest.raises(NotFoundError, match="Role 'ghost' not found"):
            await service.set_grant("ghost", catalog["content.view"].id, True)
        with pytest.raises(NotFoundError, match="Permission"):
            await service.set_grant("visitor", uuid.uuid4(), True)

    @pytest.mark.anyio
    async def test_dynamic_role_grants(self, session, catalog):
        await RoleService(session).create_dynamic_role(
            name="Gestionnaire", code="content_manager", description=None, category="library"
        )
        service = GrantService(session)

        await service.set_grant("content_manager", catalog["content.edit"].id, True)

        assert granted_names(await service.get_grants("content_manager")) == {"content.edit"}

    @pytest.mark.anyio
    async def test_set_category_grants(self, session, catalog):
        service = GrantService(session)

        rows = await service.set_category_grants("dac", "exhibitions", True)

        assert len(rows) == 2
        assert granted_names(await service.get_grants("dac")) == {
            "exhibitions.view",
            "exhibitions.manage",
        }

        await service.set_category_grants("dac", "exhibitions", False)
        assert granted_names(await service.get_grants("dac")) == set()

    @pytest.mark.anyio
    async def test_set_category_grants_unknown_category(self, session, catalog):
        with pytest.raises(ValidationError, match="Invalid permission category"):
            await GrantService(session).set_category_grants("dac", "weather", True)

    @pytest.mark.anyio
    async def test_set_category_grants_is_all_or_nothing(self, session, catalog):
        service = GrantService(session)
        real_upsert = service.role_permission_repo.upsert
        calls = 0

        async def failing_upsert(role, permission_id, granted):
            nonlocal calls
            calls += 1
            if calls == 3:
                raise RuntimeError("connection dropped mid-batch")
            return await real_upsert(role, permission_id, granted)

        with patch.object(service.role_permission_repo, "upsert", AsyncMock(side_effect=failing_upsert)):
            with pytest.raises(RuntimeError):
                await service.set_category_grants("librarian", "collections", True)

        assert granted_names(await service.get_grants("librarian")) == set()
