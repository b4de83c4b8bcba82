import uuid
from collections.abc import AsyncGenerator
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_session
from .errors import AuthError
from .security.token_inspection import ExpiredTokenError, InvalidTokenError, extract_user_id
from .services.resolution_service import ResolutionService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> uuid.UUID:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Not authenticated")

    try:
        return extract_user_id(credentials.credentials)
    except ExpiredTokenError:
        raise AuthError("Token has expired") from None
    except InvalidTokenError:
        raise AuthError("Invalid token") from None


def require_admin_permission(permission: str) -> Callable:
    """
    Dependency enforcing a catalog permission on the caller.

    401 when the caller is not authenticated, 403 (audited) when the
    resolved permission set lacks ``permission``. Returns the caller's id.
    """
    async def dependency(
        request: Request,
        user_id: uuid.UUID = Depends(get_current_user_id),
        db: AsyncSession = Depends(get_db),
    ) -> uuid.UUID:
        await ResolutionService(db).require_permission(
            user_id,
            permission,
            request_method=request.method,
            request_path=request.url.path,
        )
        return user_id

    return dependency
