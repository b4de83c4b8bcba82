import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.user_role import UserRole


class UserRoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: uuid.UUID) -> UserRole | None:
        result = await self.session.execute(
            select(UserRole).where(UserRole.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def assign(self, user_id: uuid.UUID, role: str, granted_by: uuid.UUID | None = None) -> UserRole:
        user_role = await self.get_by_user_id(user_id)
        if user_role is None:
            user_role = UserRole(user_id=user_id, role=role, granted_by=granted_by)
            self.session.add(user_role)
        else:
            user_role.role = role
            user_role.granted_by = granted_by
            user_role.granted_at = utcnow()
        await self.session.flush()
        await self.session.refresh(user_role)
        return user_role
