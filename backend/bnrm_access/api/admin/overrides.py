"""
Admin API endpoints for per-user permission overrides.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...auth.rbac_contract import MANAGE_PERMISSIONS
from ...dependencies import get_db, require_admin_permission
from ...models.user_permission import UserPermission
from ...schemas.override import OverrideCreate, OverrideResponse
from ...services.override_service import OverrideService, is_expired


router = APIRouter(prefix="/admin/overrides", tags=["admin-overrides"])


def override_response(override: UserPermission, expired: bool) -> OverrideResponse:
    return OverrideResponse(
        id=override.id,
        user_id=override.user_id,
        permission_id=override.permission_id,
        permission_name=override.permission.name,
        permission_category=override.permission.category,
        granted=override.granted,
        granted_by=override.granted_by,
        reason=override.reason,
        expires_at=override.expires_at,
        created_at=override.created_at,
        is_expired=expired,
    )


@router.get("", response_model=list[OverrideResponse])
async def list_overrides(
    user_id: UUID | None = Query(None, description="Restrict to one user"),
    include_expired: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    views = await OverrideService(db).list_overrides(
        user_id=user_id, include_expired=include_expired
    )
    return [override_response(view.override, view.is_expired) for view in views]


@router.post("", response_model=OverrideResponse, status_code=status.HTTP_201_CREATED)
async def grant_override(
    payload: OverrideCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    override = await OverrideService(db).grant_override(
        user_id=payload.user_id,
        permission_id=payload.permission_id,
        granted=payload.granted,
        reason=payload.reason,
        expires_at=payload.expires_at,
        granted_by=actor_id,
    )
    return override_response(override, is_expired(override))


@router.delete("/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_override(
    override_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    await OverrideService(db).revoke_override(override_id, actor_id=actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
