import logging
import uuid
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession

from ..crud.audit_log import AuditLogRepository
from ..database import AsyncSessionLocal
from ..models.audit_log import ALLOWED_ACTOR_TYPES, AuditLog
from .transport import translate_transport_errors

logger = logging.getLogger("bnrm_access.audit")


class AuditService:
    """Records administrative changes in ``audit_logs``.

    Entries are staged in the caller's session so they commit (or roll back)
    together with the change they describe.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_repo = AuditLogRepository(session)

    def _validate_actor_type(self, actor_type: str) -> None:
        if actor_type not in ALLOWED_ACTOR_TYPES:
            raise ValueError(
                f"Invalid actor_type '{actor_type}'. "
                f"Must be one of: {', '.join(sorted(ALLOWED_ACTOR_TYPES))}"
            )

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: str | uuid.UUID,
        actor_id: uuid.UUID | None = None,
        actor_type: str = "user",
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        reason: str | None = None,
    ):
        self._validate_actor_type(actor_type)
        if actor_id is None and actor_type == "user":
            actor_type = "system"

        return await self.audit_repo.create(
            actor_id=actor_id,
            actor_type=actor_type,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            before=before,
            after=after,
            reason=reason,
        )

    async def log_create(
        self,
        entity_type: str,
        entity_id: str | uuid.UUID,
        entity_data: dict[str, Any],
        actor_id: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> None:
        await self.log(
            action=f"{entity_type}.create",
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            after=entity_data,
            reason=reason,
        )

    async def log_update(
        self,
        entity_type: str,
        entity_id: str | uuid.UUID,
        before_data: dict[str, Any] | None,
        after_data: dict[str, Any],
        actor_id: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> None:
        await self.log(
            action=f"{entity_type}.update",
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            before=before_data,
            after=after_data,
            reason=reason,
        )

    async def log_delete(
        self,
        entity_type: str,
        entity_id: str | uuid.UUID,
        entity_data: dict[str, Any],
        actor_id: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> None:
        await self.log(
            action=f"{entity_type}.delete",
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            before=entity_data,
            after=None,
            reason=reason,
        )

    @translate_transport_errors
    async def list_entries(
        self,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        actor_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        return await self.audit_repo.list_entries(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            limit=limit,
        )


async def record_permission_denied(
    permission: str,
    actor_id: uuid.UUID | None,
    request_method: str | None = None,
    request_path: str | None = None,
) -> None:
    """Write a permission denial in its own transaction.

    A failure here is logged and dropped; the caller still denies access.
    """
    try:
        async with AsyncSessionLocal() as audit_session:
            await AuditService(audit_session).log(
                action="permission_denied",
                entity_type="permission",
                entity_id=permission,
                actor_id=actor_id,
                actor_type="user" if actor_id is not None else "anonymous",
                after={
                    "required_permissions": [permission],
                    "request_method": request_method,
                    "request_path": request_path,
                },
                reason="RBAC_DENIED",
            )
            await audit_session.commit()
    except Exception:
        logger.exception(
            "permission denial audit failed permission=%s actor_id=%s", permission, actor_id
        )
