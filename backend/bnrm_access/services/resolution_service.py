import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..crud.permission import PermissionRepository
from ..crud.role_permission import RolePermissionRepository
from ..crud.user_permission import UserPermissionRepository
from ..crud.user_role import UserRoleRepository
from ..errors import ForbiddenError
from ..models.base import utcnow
from ..models.user_permission import UserPermission
from .audit_service import record_permission_denied
from .role_service import RoleService
from .transport import translate_transport_errors

logger = logging.getLogger("bnrm_access.resolution")

SOURCE_OVERRIDE = "override"
SOURCE_ROLE = "role"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class PermissionDecision:
    name: str
    category: str
    granted: bool
    source: str
    override_id: uuid.UUID | None = None


@dataclass(frozen=True)
class PermissionExplanation:
    user_id: uuid.UUID
    role: str | None
    decisions: list[PermissionDecision]

    @property
    def effective(self) -> set[str]:
        return {decision.name for decision in self.decisions if decision.granted}


def newest_overrides(overrides: list[UserPermission]) -> dict[str, UserPermission]:
    """Decisive override per permission name from a newest-first list."""
    decisive: dict[str, UserPermission] = {}
    for override in overrides:
        decisive.setdefault(override.permission.name, override)
    return decisive


class ResolutionService:
    """Computes a user's effective permission set.

    Precedence: newest unexpired override, then role grant, then deny.
    Users whose role cannot be resolved get nothing.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.permission_repo = PermissionRepository(session)
        self.role_permission_repo = RolePermissionRepository(session)
        self.override_repo = UserPermissionRepository(session)
        self.user_role_repo = UserRoleRepository(session)
        self.roles = RoleService(session)

    async def _resolve_role_code(self, user_id: uuid.UUID) -> str | None:
        user_role = await self.user_role_repo.get_by_user_id(user_id)
        if user_role is None:
            logger.warning("resolution fail-closed user_id=%s reason=no_role", user_id)
            return None
        role = await self.roles.find_active_role(user_role.role)
        if role is None:
            logger.warning(
                "resolution fail-closed user_id=%s role=%s reason=unknown_or_inactive_role",
                user_id,
                user_role.role,
            )
            return None
        return role.code

    @translate_transport_errors
    async def resolve(self, user_id: uuid.UUID) -> set[str]:
        role_code = await self._resolve_role_code(user_id)
        if role_code is None:
            return set()

        effective = set(await self.role_permission_repo.get_granted_permission_names(role_code))
        overrides = await self.override_repo.list_by_filters(user_id=user_id, active_at=utcnow())
        for name, override in newest_overrides(overrides).items():
            if override.granted:
                effective.add(name)
            else:
                effective.discard(name)
        return effective

    @translate_transport_errors
    async def explain(self, user_id: uuid.UUID) -> PermissionExplanation:
        """Per-permission decision and where it came from."""
        role_code = await self._resolve_role_code(user_id)
        permissions = await self.permission_repo.list_all()
        if role_code is None:
            return PermissionExplanation(
                user_id=user_id,
                role=None,
                decisions=[
                    PermissionDecision(permission.name, permission.category, False, SOURCE_DEFAULT)
                    for permission in permissions
                ],
            )

        role_granted = set(await self.role_permission_repo.get_granted_permission_names(role_code))
        overrides = newest_overrides(
            await self.override_repo.list_by_filters(user_id=user_id, active_at=utcnow())
        )
        decisions = []
        for permission in permissions:
            override = overrides.get(permission.name)
            if override is not None:
                decisions.append(
                    PermissionDecision(
                        permission.name,
                        permission.category,
                        override.granted,
                        SOURCE_OVERRIDE,
                        override.id,
                    )
                )
            elif permission.name in role_granted:
                decisions.append(
                    PermissionDecision(permission.name, permission.category, True, SOURCE_ROLE)
                )
            else:
                decisions.append(
                    PermissionDecision(permission.name, permission.category, False, SOURCE_DEFAULT)
                )
        return PermissionExplanation(user_id=user_id, role=role_code, decisions=decisions)

    async def has_permission(self, user_id: uuid.UUID, permission_name: str) -> bool:
        return permission_name in await self.resolve(user_id)

    async def require_permission(
        self,
        user_id: uuid.UUID,
        permission_name: str,
        request_method: str | None = None,
        request_path: str | None = None,
    ) -> None:
        """
        Raises:
            ForbiddenError: The user does not hold the permission
        """
        if await self.has_permission(user_id, permission_name):
            return

        logger.warning("permission denied user_id=%s permission=%s", user_id, permission_name)
        # Isolated transaction so the denial is recorded even though the
        # request's own session is never committed
        await record_permission_denied(
            permission=permission_name,
            actor_id=user_id,
            request_method=request_method,
            request_path=request_path,
        )
        raise ForbiddenError(
            f"Permission denied: {permission_name} required",
            details={"required_permission": permission_name},
        )
