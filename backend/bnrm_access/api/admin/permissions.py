"""
Admin API endpoints for the permission catalog (read-only).
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...auth.rbac_contract import MANAGE_PERMISSIONS
from ...dependencies import get_db, require_admin_permission
from ...schemas.permission import CategoryResponse, PermissionResponse
from ...services.catalog_service import PermissionCatalogService


router = APIRouter(prefix="/admin/permissions", tags=["admin-permissions"])


@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    category: str | None = Query(None, description="Restrict to one category"),
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    service = PermissionCatalogService(db)
    if category is not None:
        return await service.list_by_category(category)
    return await service.list_all()


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    _: UUID = Depends(require_admin_permission(MANAGE_PERMISSIONS)),
):
    return await PermissionCatalogService(db).list_categories()
