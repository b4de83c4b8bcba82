import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.custom_role import CustomRole


class CustomRoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        role_code: str,
        name: str,
        category: str,
        description: str | None = None,
        created_by: uuid.UUID | None = None,
        is_active: bool = False,
    ) -> CustomRole:
        role = CustomRole(
            role_code=role_code,
            name=name,
            category=category,
            description=description,
            created_by=created_by,
            is_active=is_active,
        )
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def get_by_id(self, role_id: uuid.UUID) -> CustomRole | None:
        return await self.session.get(CustomRole, role_id)

    async def get_by_code(self, role_code: str) -> CustomRole | None:
        result = await self.session.execute(
            select(CustomRole).where(CustomRole.role_code == role_code)
        )
        return result.scalar_one_or_none()

    async def list_all(self, include_inactive: bool = False) -> list[CustomRole]:
        query = select(CustomRole)
        if not include_inactive:
            query = query.where(CustomRole.is_active)
        result = await self.session.execute(query.order_by(CustomRole.created_at))
        return list(result.scalars().all())

    async def set_active(self, role: CustomRole, is_active: bool) -> CustomRole:
        role.is_active = is_active
        await self.session.flush()
        await self.session.refresh(role)
        return role
