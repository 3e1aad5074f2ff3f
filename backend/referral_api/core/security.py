from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Mapping

from jose import jwt

from .config import settings


def create_access_token(data: Mapping[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT access token; ``sub`` carries the user email.

    Tokens are issued by the identity service in deployments; this helper
    mints compatible tokens for local runs and the test suite.
    """
    to_encode = dict(data)
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
