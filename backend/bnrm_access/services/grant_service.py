import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import rbac_contract
from ..crud.permission import PermissionRepository
from ..crud.role_permission import RolePermissionRepository
from ..errors import NotFoundError, ValidationError
from ..models.permission import Permission
from ..models.role_permission import RolePermission
from .audit_service import AuditService
from .role_service import RoleService
from .transport import translate_transport_errors

logger = logging.getLogger("bnrm_access.grants")


@dataclass(frozen=True)
class GrantView:
    permission: Permission
    granted: bool


class GrantService:
    """Role-permission grants. A missing row means not granted."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.permission_repo = PermissionRepository(session)
        self.role_permission_repo = RolePermissionRepository(session)
        self.roles = RoleService(session)
        self.audit = AuditService(session)

    async def _require_role(self, role: str) -> str:
        view = await self.roles.find_role(role)
        if view is None:
            raise NotFoundError(f"Role '{role}' not found")
        return view.code

    @translate_transport_errors
    async def get_grants(self, role: str) -> list[GrantView]:
        """The whole catalog annotated with the role's grant state."""
        role_code = await self._require_role(role)
        permissions = await self.permission_repo.list_all()
        rows = await self.role_permission_repo.list_for_role(role_code)
        granted_ids = {row.permission_id for row in rows if row.granted}
        return [GrantView(permission, permission.id in granted_ids) for permission in permissions]

    @translate_transport_errors
    async def set_grant(
        self,
        role: str,
        permission_id: uuid.UUID,
        granted: bool,
        actor_id: uuid.UUID | None = None,
    ) -> RolePermission:
        role_code = await self._require_role(role)
        permission = await self.permission_repo.get_by_id(permission_id)
        if permission is None:
            raise NotFoundError(f"Permission '{permission_id}' not found")

        existing = await self.role_permission_repo.get(role_code, permission.id)
        before = {"granted": existing.granted} if existing is not None else None
        row = await self.role_permission_repo.upsert(role_code, permission.id, granted)
        await self.audit.log_update(
            entity_type="role_permission",
            entity_id=f"{role_code}:{permission.name}",
            before_data=before,
            after_data={"granted": granted},
            actor_id=actor_id,
        )
        await self.session.commit()
        logger.info(
            "role grant set role=%s permission=%s granted=%s", role_code, permission.name, granted
        )
        return row

    @translate_transport_errors
    async def set_category_grants(
        self,
        role: str,
        category: str,
        granted: bool,
        actor_id: uuid.UUID | None = None,
    ) -> list[RolePermission]:
        """Grant or revoke a whole category for a role, all or nothing."""
        try:
            category_code = rbac_contract.parse_category(category).value
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        role_code = await self._require_role(role)

        permissions = await self.permission_repo.list_by_category(category_code)
        try:
            rows = [
                await self.role_permission_repo.upsert(role_code, permission.id, granted)
                for permission in permissions
            ]
            await self.audit.log_update(
                entity_type="role_permission",
                entity_id=f"{role_code}:{category_code}.*",
                before_data=None,
                after_data={
                    "granted": granted,
                    "permissions": [permission.name for permission in permissions],
                },
                actor_id=actor_id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "category grants set role=%s category=%s granted=%s count=%s",
            role_code,
            category_code,
            granted,
            len(rows),
        )
        return rows
