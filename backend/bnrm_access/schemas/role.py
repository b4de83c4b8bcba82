import uuid
from pydantic import BaseModel, Field


class RoleResponse(BaseModel):
    code: str
    name: str
    description: str | None = None
    category: str
    category_label: str
    source: str
    classification: str | None = None
    color: str | None = None
    id: uuid.UUID | None = None
    is_active: bool
    is_system: bool
    has_custom_record: bool

    class Config:
        from_attributes = True


class RoleCreate(BaseModel):
    name: str = Field(..., max_length=255)
    code: str = Field(..., max_length=255)
    description: str | None = None
    category: str
    permission_ids: list[uuid.UUID] = Field(default_factory=list)


class RoleCreateResponse(BaseModel):
    role: RoleResponse
    migration_required: bool
    migration_sql: str | None = None


class GrantResponse(BaseModel):
    permission_id: uuid.UUID
    name: str
    category: str
    description: str | None = None
    granted: bool


class GrantUpdate(BaseModel):
    granted: bool


class RolePermissionResponse(BaseModel):
    role: str
    permission_id: uuid.UUID
    granted: bool

    class Config:
        from_attributes = True


class UserRoleUpdate(BaseModel):
    role: str = Field(..., min_length=1, max_length=100)


class UserRoleResponse(BaseModel):
    user_id: uuid.UUID
    role: str
    granted_by: uuid.UUID | None = None

    class Config:
        from_attributes = True
