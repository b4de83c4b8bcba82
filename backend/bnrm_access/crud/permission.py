import uuid
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.permission import Permission


class PermissionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, category: str, description: str | None = None) -> Permission:
        permission = Permission(name=name, category=category, description=description)
        self.session.add(permission)
        await self.session.flush()
        await self.session.refresh(permission)
        return permission

    async def get_by_id(self, permission_id: uuid.UUID) -> Permission | None:
        return await self.session.get(Permission, permission_id)

    async def get_by_name(self, name: str) -> Permission | None:
        result = await self.session.execute(
            select(Permission).where(Permission.name == name)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Permission]:
        result = await self.session.execute(
            select(Permission).order_by(Permission.category, Permission.name)
        )
        return list(result.scalars().all())

    async def list_by_category(self, category: str) -> list[Permission]:
        result = await self.session.execute(
            select(Permission)
            .where(Permission.category == category)
            .order_by(Permission.name)
        )
        return list(result.scalars().all())

    async def count_by_category(self) -> dict[str, int]:
        result = await self.session.execute(
            select(Permission.category, func.count(Permission.id)).group_by(Permission.category)
        )
        return {category: count for category, count in result.all()}
