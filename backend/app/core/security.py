from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from app.core.config import settings


# Tokens are issued by the auth service; this backend only needs to read them.
# create_token is kept for bootstrap scripts and tests.
def create_token(subject: str, expires_minutes: int, token_type: str = "access") -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
