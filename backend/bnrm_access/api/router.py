from fastapi import APIRouter

from .admin import audit as admin_audit
from .admin import overrides as admin_overrides
from .admin import permissions as admin_permissions
from .admin import roles as admin_roles
from .admin import users as admin_users

router = APIRouter(prefix="/api")

_admin_routers = [
    admin_permissions.router,
    admin_roles.router,
    admin_overrides.router,
    admin_users.router,
    admin_audit.router,
]

for _router in _admin_routers:
    router.include_router(_router)
