import uuid
from datetime import datetime
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user_permission import UserPermission


class UserPermissionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: uuid.UUID,
        permission_id: uuid.UUID,
        granted: bool,
        granted_by: uuid.UUID | None = None,
        reason: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserPermission:
        override = UserPermission(
            user_id=user_id,
            permission_id=permission_id,
            granted=granted,
            granted_by=granted_by,
            reason=reason,
            expires_at=expires_at,
        )
        self.session.add(override)
        await self.session.flush()
        await self.session.refresh(override, attribute_names=["permission"])
        return override

    async def get_by_id(self, override_id: uuid.UUID) -> UserPermission | None:
        return await self.session.get(UserPermission, override_id, populate_existing=True)

    async def delete(self, override: UserPermission) -> None:
        await self.session.delete(override)
        await self.session.flush()

    async def list_by_filters(
        self,
        user_id: uuid.UUID | None = None,
        active_at: datetime | None = None,
    ) -> list[UserPermission]:
        """Overrides newest first; ``active_at`` drops rows expired at that instant."""
        query = select(UserPermission)
        if user_id is not None:
            query = query.where(UserPermission.user_id == user_id)
        if active_at is not None:
            query = query.where(
                or_(
                    UserPermission.expires_at.is_(None),
                    UserPermission.expires_at > active_at,
                )
            )
        # id breaks ties between rows written in the same instant
        query = query.order_by(UserPermission.created_at.desc(), UserPermission.id.desc())
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().unique().all())
