import uuid

import pytest
from sqlalchemy import func, select

from bnrm_access.auth import rbac_contract
from bnrm_access.crud.role_permission import RolePermissionRepository
from bnrm_access.crud.user_role import UserRoleRepository
from bnrm_access.models import Permission, RolePermission
from scripts.seed_access_catalog import seed_access_catalog


@pytest.mark.anyio
async def test_seed_creates_catalog_and_default_grants(session) -> None:
    report = await seed_access_catalog(session)

    assert report.permissions_created == len(rbac_contract.PERMISSION_CATALOG)
    assert report.permissions_existing == 0
    assert report.admin_assigned is False
    total_grants = sum(len(names) for names in rbac_contract.DEFAULT_ROLE_GRANTS.values())
    assert report.grants_created == total_grants

    granted = await RolePermissionRepository(session).get_granted_permission_names("admin")
    assert set(granted) == rbac_contract.CATALOG_PERMISSION_NAMES


@pytest.mark.anyio
async def test_seed_is_idempotent_and_keeps_admin_changes(session) -> None:
    await seed_access_catalog(session)
    repo = RolePermissionRepository(session)
    edit = (await session.execute(
        select(Permission).where(Permission.name == "collections.edit")
    )).scalar_one()
    await repo.upsert("librarian", edit.id, False)
    await session.commit()

    report = await seed_access_catalog(session)

    assert report.permissions_created == 0
    assert report.permissions_existing == len(rbac_contract.PERMISSION_CATALOG)
    assert report.grants_created == 0
    assert "collections.edit" not in await repo.get_granted_permission_names("librarian")
    count = await session.scalar(select(func.count()).select_from(Permission))
    assert count == len(rbac_contract.PERMISSION_CATALOG)
    rows = await session.scalar(select(func.count()).select_from(RolePermission))
    assert rows == sum(len(names) for names in rbac_contract.DEFAULT_ROLE_GRANTS.values())


@pytest.mark.anyio
async def test_seed_assigns_first_admin(session) -> None:
    admin_id = uuid.uuid4()
    report = await seed_access_catalog(session, admin_user_id=admin_id)

    assert report.admin_assigned is True
    assignment = await UserRoleRepository(session).get_by_user_id(admin_id)
    assert assignment.role == "admin"
