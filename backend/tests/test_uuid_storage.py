"""
UUID columns must read back as UUIDs whatever their hex digits look like.
"""
import uuid

import pytest

from bnrm_access.crud.audit_log import AuditLogRepository
from bnrm_access.crud.role_permission import RolePermissionRepository
from bnrm_access.crud.user_role import UserRoleRepository
from bnrm_access.services.override_service import OverrideService
from bnrm_access.services.resolution_service import ResolutionService
from bnrm_access.services.user_role_service import UserRoleService

DIGITS_ONLY = uuid.UUID("00000000-0000-4000-8000-000000000001")
EXPONENT_LIKE = uuid.UUID("12345678-1234-4e12-8123-123456789012")


@pytest.mark.parametrize("user_id", [DIGITS_ONLY, EXPONENT_LIKE])
@pytest.mark.anyio
async def test_role_assignment_and_resolution(session, catalog, user_id) -> None:
    await RolePermissionRepository(session).upsert("librarian", catalog["collections.edit"].id, True)
    await session.commit()

    assignment = await UserRoleRepository(session).assign(user_id, "librarian")
    await session.commit()
    await session.refresh(assignment)

    assert assignment.user_id == user_id
    assert await ResolutionService(session).resolve(user_id) == {"collections.edit"}


@pytest.mark.parametrize("user_id", [DIGITS_ONLY, EXPONENT_LIKE])
@pytest.mark.anyio
async def test_override_and_audit_actor(session, catalog, user_id) -> None:
    override = await OverrideService(session).grant_override(
        user_id, catalog["content.view"].id, True, granted_by=user_id
    )

    [view] = await OverrideService(session).list_overrides(user_id=user_id)
    assert view.override.id == override.id
    assert view.override.user_id == user_id
    assert view.override.granted_by == user_id
    [entry] = await AuditLogRepository(session).list_entries(actor_id=user_id)
    assert entry.actor_id == user_id


@pytest.mark.anyio
async def test_assign_role_through_service(session) -> None:
    user_role = await UserRoleService(session).assign_role(
        EXPONENT_LIKE, "visitor", granted_by=DIGITS_ONLY
    )
    await session.refresh(user_role)

    assert user_role.granted_by == DIGITS_ONLY
    assert await UserRoleService(session).get_user_role(EXPONENT_LIKE) == "visitor"
