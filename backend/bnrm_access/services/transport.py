import functools
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from ..errors import TransportError

logger = logging.getLogger("bnrm_access.database")

T = TypeVar("T")


def translate_transport_errors(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Surface data store connectivity failures as ``TransportError``.

    Constraint violations and other statement errors propagate untouched.
    Nothing is retried.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except (OperationalError, InterfaceError, ConnectionError) as exc:
            logger.error("data store unreachable operation=%s error=%s", func.__qualname__, exc)
            raise TransportError(details=type(exc).__name__) from exc
        except DBAPIError as exc:
            if not exc.connection_invalidated:
                raise
            logger.error("data store connection lost operation=%s error=%s", func.__qualname__, exc)
            raise TransportError(details=type(exc).__name__) from exc

    return wrapper
