import logging
import uuid
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import rbac_contract
from ..crud.custom_role import CustomRoleRepository
from ..crud.permission import PermissionRepository
from ..crud.role_permission import RolePermissionRepository
from ..domain.roles import EnumRole, RoleView, merge_roles, role_identity, role_view
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models.custom_role import CustomRole
from .audit_service import AuditService
from .transport import translate_transport_errors

logger = logging.getLogger("bnrm_access.roles")


@dataclass(frozen=True)
class RoleCreationResult:
    role: RoleView
    migration_required: bool
    migration_sql: str | None


def _custom_role_snapshot(role: CustomRole) -> dict:
    return {
        "role_code": role.role_code,
        "name": role.name,
        "category": role.category,
        "is_active": role.is_active,
    }


class RoleService:
    """Role registry: built-in enum roles plus administrator-defined roles."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.custom_role_repo = CustomRoleRepository(session)
        self.permission_repo = PermissionRepository(session)
        self.role_permission_repo = RolePermissionRepository(session)
        self.audit = AuditService(session)

    @translate_transport_errors
    async def list_roles(self) -> list[RoleView]:
        """Enum roles and published dynamic roles, one entry per code."""
        active = await self.custom_role_repo.list_all(include_inactive=False)
        return merge_roles(active)

    @translate_transport_errors
    async def get_role(self, code: str) -> RoleView:
        role = await self.find_role(code)
        if role is None:
            raise NotFoundError(f"Role '{code}' not found")
        return role

    async def find_role(self, code: str) -> RoleView | None:
        """Any known role, including unpublished or deactivated dynamic ones."""
        record = await self.custom_role_repo.get_by_code(code)
        identity = role_identity(code, record)
        if identity is None:
            return None
        return role_view(identity, record)

    async def find_active_role(self, code: str) -> RoleView | None:
        """The role if users holding it may be granted anything, else None."""
        role = await self.find_role(code)
        if role is None or not role.is_active:
            return None
        return role

    @translate_transport_errors
    async def create_dynamic_role(
        self,
        name: str,
        code: str,
        description: str | None,
        category: str,
        permission_ids: Iterable[uuid.UUID] = (),
        created_by: uuid.UUID | None = None,
    ) -> RoleCreationResult:
        """
        Register a new role. The row starts unpublished.

        Codes outside the ``user_role`` enum are stored and manageable here, but
        row-level security ignores them until the returned migration SQL has been
        applied to the database.

        Raises:
            ValidationError: Empty name/code, malformed code, unknown category
                or a code already used by another dynamic role
            NotFoundError: One of ``permission_ids`` is not in the catalog
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Role name is required")

        role_code = rbac_contract.normalize_role_code(code or "")
        try:
            rbac_contract.validate_role_code(role_code)
            role_group = rbac_contract.parse_role_group(category)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        if await self.custom_role_repo.get_by_code(role_code) is not None:
            raise ValidationError(
                f"Role code '{role_code}' is already used by another role",
                details={"role_code": role_code},
            )

        permissions = []
        for permission_id in dict.fromkeys(permission_ids):
            permission = await self.permission_repo.get_by_id(permission_id)
            if permission is None:
                raise NotFoundError(f"Permission '{permission_id}' not found")
            permissions.append(permission)

        description = (description or "").strip() or None
        record = await self.custom_role_repo.create(
            role_code=role_code,
            name=name,
            category=role_group.value,
            description=description,
            created_by=created_by,
        )
        for permission in permissions:
            await self.role_permission_repo.upsert(role_code, permission.id, True)

        await self.audit.log_create(
            entity_type="role",
            entity_id=record.id,
            entity_data={
                **_custom_role_snapshot(record),
                "permissions": sorted(permission.name for permission in permissions),
            },
            actor_id=created_by,
        )
        await self.session.commit()

        view = role_view(role_identity(role_code, record), record)
        if isinstance(view.identity, EnumRole):
            logger.info(
                "custom role record merged into enum role role_code=%s role_id=%s",
                role_code,
                record.id,
            )
            return RoleCreationResult(
                role=view,
                migration_required=False,
                migration_sql=None,
            )

        migration_sql = rbac_contract.enum_role_migration_sql(role_code)
        logger.warning(
            "custom role created outside user_role enum role_code=%s role_id=%s "
            "migration_required=true sql=%r",
            role_code,
            record.id,
            migration_sql,
        )
        return RoleCreationResult(
            role=view,
            migration_required=True,
            migration_sql=migration_sql,
        )

    @translate_transport_errors
    async def publish_dynamic_role(
        self, role_id: uuid.UUID, actor_id: uuid.UUID | None = None
    ) -> RoleView:
        record = await self.custom_role_repo.get_by_id(role_id)
        if record is None:
            raise NotFoundError(f"Role '{role_id}' not found")

        before = _custom_role_snapshot(record)
        record = await self.custom_role_repo.set_active(record, True)
        await self.audit.log_update(
            entity_type="role",
            entity_id=record.id,
            before_data=before,
            after_data=_custom_role_snapshot(record),
            actor_id=actor_id,
            reason="publish",
        )
        await self.session.commit()
        logger.info("custom role published role_code=%s role_id=%s", record.role_code, record.id)

        return role_view(role_identity(record.role_code, record), record)

    @translate_transport_errors
    async def deactivate_dynamic_role(
        self, role_key: str, actor_id: uuid.UUID | None = None
    ) -> RoleView:
        """
        Soft-delete a dynamic role by id or code.

        Grants recorded for the role are kept.

        Raises:
            ForbiddenError: The key designates a built-in enum role
            NotFoundError: No dynamic role matches the key
        """
        record = await self._get_custom_role_by_key(role_key)
        identity = role_identity(record.role_code if record is not None else role_key, record)
        if isinstance(identity, EnumRole):
            raise ForbiddenError(f"Role '{identity.code}' is a system role and cannot be deleted")
        if identity is None:
            raise NotFoundError(f"Role '{role_key}' not found")

        before = _custom_role_snapshot(record)
        record = await self.custom_role_repo.set_active(record, False)
        await self.audit.log_delete(
            entity_type="role",
            entity_id=record.id,
            entity_data=before,
            actor_id=actor_id,
            reason="deactivate",
        )
        await self.session.commit()
        logger.info(
            "custom role deactivated role_code=%s role_id=%s", record.role_code, record.id
        )
        return role_view(identity, record)

    async def _get_custom_role_by_key(self, role_key: str) -> CustomRole | None:
        try:
            role_id = uuid.UUID(role_key)
        except ValueError:
            return await self.custom_role_repo.get_by_code(role_key)
        return await self.custom_role_repo.get_by_id(role_id)
