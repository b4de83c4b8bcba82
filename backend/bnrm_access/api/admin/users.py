"""
Admin API endpoints for user role assignment and effective permissions.
"""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ...auth.rbac_contract import MANAGE_PERMISSIONS, MANAGE_ROLES
from ...dependencies import get_current_user_id, get_db, require_admin_permission
from ...schemas.resolution import EffectivePermissionsResponse, PermissionDecisionResponse
from ...schemas.role import UserRoleResponse, UserRoleUpdate
from ...services.resolution_service import ResolutionService
from ...services.user_role_service import UserRoleService


router = APIRouter(prefix="/admin", tags=["admin-users"])


@router.put("/users/{user_id}/role", response_model=UserRoleResponse)
async def assign_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_ROLES)),
):
    return await UserRoleService(db).assign_role(user_id, payload.role, granted_by=actor_id)


@router.get("/users/{user_id}/role", response_model=UserRoleUpdate)
async def get_user_role(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return UserRoleUpdate(role=await UserRoleService(db).get_user_role(user_id))


@router.get("/users/{user_id}/permissions", response_model=EffectivePermissionsResponse)
async def get_user_permissions(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    explanation = await ResolutionService(db).explain(user_id)
    return EffectivePermissionsResponse(
        user_id=user_id,
        role=explanation.role,
        permissions=sorted(explanation.effective),
        decisions=[
            PermissionDecisionResponse(
                name=decision.name,
                category=decision.category,
                granted=decision.granted,
                source=decision.source,
                override_id=decision.override_id,
            )
            for decision in explanation.decisions
        ],
    )


@router.get("/me/permissions", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    permissions = await ResolutionService(db).resolve(user_id)
    return EffectivePermissionsResponse(user_id=user_id, permissions=sorted(permissions))
