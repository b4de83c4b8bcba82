import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ..crud.permission import PermissionRepository
from ..crud.user_permission import UserPermissionRepository
from ..errors import NotFoundError, ValidationError
from ..models.base import utcnow
from ..models.user_permission import UserPermission
from .audit_service import AuditService
from .transport import translate_transport_errors

logger = logging.getLogger("bnrm_access.overrides")


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(override: UserPermission, now: datetime | None = None) -> bool:
    if override.expires_at is None:
        return False
    return as_utc(override.expires_at) <= (now or utcnow())


@dataclass(frozen=True)
class OverrideView:
    override: UserPermission
    is_expired: bool


def _override_snapshot(override: UserPermission, permission_name: str) -> dict:
    return {
        "user_id": str(override.user_id),
        "permission": permission_name,
        "granted": override.granted,
        "reason": override.reason,
        "expires_at": override.expires_at.isoformat() if override.expires_at else None,
    }


class OverrideService:
    """Per-user exceptions to role grants.

    Every grant inserts a new row; for a given (user, permission) the most
    recent unexpired row is the one that counts.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.permission_repo = PermissionRepository(session)
        self.override_repo = UserPermissionRepository(session)
        self.audit = AuditService(session)

    @translate_transport_errors
    async def grant_override(
        self,
        user_id: uuid.UUID,
        permission_id: uuid.UUID,
        granted: bool,
        reason: str | None = None,
        expires_at: datetime | None = None,
        granted_by: uuid.UUID | None = None,
    ) -> UserPermission:
        """
        Raises:
            NotFoundError: Unknown permission
            ValidationError: ``expires_at`` has no timezone or is already past
        """
        permission = await self.permission_repo.get_by_id(permission_id)
        if permission is None:
            raise NotFoundError(f"Permission '{permission_id}' not found")

        if expires_at is not None:
            if expires_at.tzinfo is None or expires_at.utcoffset() is None:
                raise ValidationError("expires_at must include a timezone")
            expires_at = expires_at.astimezone(timezone.utc)
            if expires_at <= utcnow():
                raise ValidationError("expires_at must be in the future")

        reason = (reason or "").strip() or None
        override = await self.override_repo.create(
            user_id=user_id,
            permission_id=permission.id,
            granted=granted,
            granted_by=granted_by,
            reason=reason,
            expires_at=expires_at,
        )
        await self.audit.log_create(
            entity_type="user_permission",
            entity_id=override.id,
            entity_data=_override_snapshot(override, permission.name),
            actor_id=granted_by,
            reason=reason,
        )
        await self.session.commit()
        logger.info(
            "override granted override_id=%s user_id=%s permission=%s granted=%s expires_at=%s",
            override.id,
            user_id,
            permission.name,
            granted,
            expires_at.isoformat() if expires_at else None,
        )
        return override

    @translate_transport_errors
    async def revoke_override(
        self, override_id: uuid.UUID, actor_id: uuid.UUID | None = None
    ) -> None:
        override = await self.override_repo.get_by_id(override_id)
        if override is None:
            raise NotFoundError(f"Override '{override_id}' not found")

        snapshot = _override_snapshot(override, override.permission.name)
        await self.override_repo.delete(override)
        await self.audit.log_delete(
            entity_type="user_permission",
            entity_id=override_id,
            entity_data=snapshot,
            actor_id=actor_id,
        )
        await self.session.commit()
        logger.info(
            "override revoked override_id=%s user_id=%s permission=%s",
            override_id,
            snapshot["user_id"],
            snapshot["permission"],
        )

    @translate_transport_errors
    async def list_overrides(
        self,
        user_id: uuid.UUID | None = None,
        include_expired: bool = True,
    ) -> list[OverrideView]:
        now = utcnow()
        overrides = await self.override_repo.list_by_filters(
            user_id=user_id,
            active_at=None if include_expired else now,
        )
        return [OverrideView(override, is_expired(override, now)) for override in overrides]
