import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.permission import Permission
from ..models.role_permission import RolePermission


class RolePermissionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, role: str, permission_id: uuid.UUID) -> RolePermission | None:
        result = await self.session.execute(
            select(RolePermission).where(
                RolePermission.role == role,
                RolePermission.permission_id == permission_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(self, role: str, permission_id: uuid.UUID, granted: bool) -> RolePermission:
        """Insert the (role, permission) row or flip its ``granted`` flag."""
        role_permission = await self.get(role, permission_id)
        if role_permission is None:
            role_permission = RolePermission(
                role=role, permission_id=permission_id, granted=granted
            )
            self.session.add(role_permission)
        else:
            role_permission.granted = granted
        await self.session.flush()
        await self.session.refresh(role_permission)
        return role_permission

    async def list_for_role(self, role: str) -> list[RolePermission]:
        result = await self.session.execute(
            select(RolePermission).where(RolePermission.role == role)
        )
        return list(result.scalars().all())

    async def get_granted_permission_names(self, role: str) -> list[str]:
        result = await self.session.execute(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role == role, RolePermission.granted.is_(True))
        )
        return list(result.scalars().all())
