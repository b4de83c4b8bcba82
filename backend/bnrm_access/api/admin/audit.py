"""
Admin API endpoint for reading the audit trail of access-control changes.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...auth.rbac_contract import MANAGE_PERMISSIONS
from ...dependencies import get_db, require_admin_permission
from ...schemas.audit_log import AuditLogResponse
from ...services.audit_service import AuditService


router = APIRouter(prefix="/admin/audit", tags=["admin-audit"])


@router.get("", response_model=list[AuditLogResponse])
async def list_audit_entries(
    action: str | None = Query(None, description="e.g. role.create, permission_denied"),
    entity_type: str | None = Query(None),
    entity_id: str | None = Query(None),
    actor_id: UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return await AuditService(db).list_entries(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        limit=limit,
    )
