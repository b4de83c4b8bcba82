from .base import Base
from .permission import Permission
from .custom_role import CustomRole
from .role_permission import RolePermission
from .user_permission import UserPermission
from .user_role import UserRole
from .audit_log import AuditLog

__all__ = [
    "Base",
    "Permission",
    "CustomRole",
    "RolePermission",
    "UserPermission",
    "UserRole",
    "AuditLog",
]
