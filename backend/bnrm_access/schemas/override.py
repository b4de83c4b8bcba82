import uuid
from datetime import datetime
from pydantic import BaseModel


class OverrideCreate(BaseModel):
    user_id: uuid.UUID
    permission_id: uuid.UUID
    granted: bool
    reason: str | None = None
    expires_at: datetime | None = None


class OverrideResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    permission_id: uuid.UUID
    permission_name: str
    permission_category: str
    granted: bool
    granted_by: uuid.UUID | None = None
    reason: str | None = None
    expires_at: datetime | None = None
    created_at: datetime
    is_expired: bool
