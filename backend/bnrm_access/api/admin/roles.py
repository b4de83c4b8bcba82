"""
Admin API endpoints for the role registry and role-permission grants.

Creating a role outside the built-in enum returns the migration that must be
applied before row-level security recognizes it.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...auth.rbac_contract import MANAGE_PERMISSIONS, MANAGE_ROLES, ROLE_GROUP_LABELS
from ...dependencies import get_db, require_admin_permission
from ...domain.roles import RoleView
from ...schemas.role import (
    GrantResponse,
    GrantUpdate,
    RoleCreate,
    RoleCreateResponse,
    RolePermissionResponse,
    RoleResponse,
)
from ...services.grant_service import GrantService
from ...services.role_service import RoleService


router = APIRouter(prefix="/admin/roles", tags=["admin-roles"])


def role_response(view: RoleView) -> RoleResponse:
    return RoleResponse(
        code=view.code,
        name=view.name,
        description=view.description,
        category=view.category.value,
        category_label=ROLE_GROUP_LABELS[view.category],
        source=view.source,
        classification=view.classification.value if view.classification else None,
        color=view.color,
        id=view.id,
        is_active=view.is_active,
        is_system=view.is_system,
        has_custom_record=view.has_custom_record,
    )


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return [role_response(view) for view in await RoleService(db).list_roles()]


@router.post("", response_model=RoleCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    payload: RoleCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_ROLES)),
):
    result = await RoleService(db).create_dynamic_role(
        name=payload.name,
        code=payload.code,
        description=payload.description,
        category=payload.category,
        permission_ids=payload.permission_ids,
        created_by=actor_id,
    )
    return RoleCreateResponse(
        role=role_response(result.role),
        migration_required=result.migration_required,
        migration_sql=result.migration_sql,
    )


@router.get("/{code}", response_model=RoleResponse)
async def get_role(
    code: str,
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return role_response(await RoleService(db).get_role(code))


@router.post("/{role_id}/publish", response_model=RoleResponse)
async def publish_role(
    role_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_ROLES)),
):
    return role_response(await RoleService(db).publish_dynamic_role(role_id, actor_id=actor_id))


@router.delete("/{role_key}", response_model=RoleResponse)
async def deactivate_role(
    role_key: str,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_ROLES)),
):
    return role_response(
        await RoleService(db).deactivate_dynamic_role(role_key, actor_id=actor_id)
    )


@router.get("/{code}/grants", response_model=list[GrantResponse])
async def get_grants(
    code: str,
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    grants = await GrantService(db).get_grants(code)
    return [
        GrantResponse(
            permission_id=grant.permission.id,
            name=grant.permission.name,
            category=grant.permission.category,
            description=grant.permission.description,
            granted=grant.granted,
        )
        for grant in grants
    ]


@router.put("/{code}/grants/{permission_id}", response_model=RolePermissionResponse)
async def set_grant(
    code: str,
    permission_id: UUID,
    payload: GrantUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return await GrantService(db).set_grant(
        code, permission_id, payload.granted, actor_id=actor_id
    )


@router.put("/{code}/categories/{category}", response_model=list[RolePermissionResponse])
async def set_category_grants(
    code: str,
    category: str,
    payload: GrantUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return await GrantService(db).set_category_grants(
        code, category, payload.granted, actor_id=actor_id
    )
