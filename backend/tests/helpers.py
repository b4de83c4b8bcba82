import uuid
from datetime import datetime, timedelta, timezone

import jwt

from bnrm_access.config import settings


def make_token(user_id: uuid.UUID, **overrides) -> str:
    payload = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **overrides,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}
