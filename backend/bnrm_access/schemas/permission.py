import uuid
from datetime import datetime
from pydantic import BaseModel


class PermissionResponse(BaseModel):
    id: uuid.UUID
    name: str
    category: str
    description: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryResponse(BaseModel):
    code: str
    label: str
    group: str
    permission_count: int

    class Config:
        from_attributes = True
