import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ..crud.user_role import UserRoleRepository
from ..errors import NotFoundError, ValidationError
from ..models.user_role import UserRole
from .audit_service import AuditService
from .role_service import RoleService
from .transport import translate_transport_errors

logger = logging.getLogger("bnrm_access.user_roles")


class UserRoleService:
    """Single role assignment per user."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_role_repo = UserRoleRepository(session)
        self.roles = RoleService(session)
        self.audit = AuditService(session)

    @translate_transport_errors
    async def assign_role(
        self, user_id: uuid.UUID, role: str, granted_by: uuid.UUID | None = None
    ) -> UserRole:
        target = await self.roles.find_active_role(role)
        if target is None:
            raise ValidationError(
                f"Role '{role}' is unknown or inactive", details={"role": role}
            )

        existing = await self.user_role_repo.get_by_user_id(user_id)
        before = {"role": existing.role} if existing is not None else None
        user_role = await self.user_role_repo.assign(user_id, target.code, granted_by)
        await self.audit.log_update(
            entity_type="user_role",
            entity_id=user_id,
            before_data=before,
            after_data={"role": target.code},
            actor_id=granted_by,
        )
        await self.session.commit()
        logger.info(
            "role assigned user_id=%s role=%s previous=%s",
            user_id,
            target.code,
            before["role"] if before else None,
        )
        return user_role

    @translate_transport_errors
    async def get_user_role(self, user_id: uuid.UUID) -> str:
        user_role = await self.user_role_repo.get_by_user_id(user_id)
        if user_role is None:
            raise NotFoundError(f"No role assigned to user '{user_id}'")
        return user_role.role
