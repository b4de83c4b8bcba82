import uuid
from pydantic import BaseModel


class PermissionDecisionResponse(BaseModel):
    name: str
    category: str
    granted: bool
    source: str  # 'override', 'role' or 'default'
    override_id: uuid.UUID | None = None


class EffectivePermissionsResponse(BaseModel):
    user_id: uuid.UUID
    role: str | None = None
    permissions: list[str]
    decisions: list[PermissionDecisionResponse] | None = None
