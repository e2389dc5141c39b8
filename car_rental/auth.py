from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .errors import UnauthorizedError
from .models import Actor, Role

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, role: Role, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expires_in = expires_in or timedelta(minutes=settings.JWT_EXPIRES_MINUTES)
    payload = {
        "sub": user_id,
        "role": role.value,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_actor(token: str) -> Actor:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("invalid token")

    user_id = payload.get("sub")
    try:
        role = Role(payload.get("role", Role.CUSTOMER.value))
    except ValueError:
        raise UnauthorizedError("invalid token")
    if not user_id:
        raise UnauthorizedError("invalid token")
    return Actor(user_id=str(user_id), role=role)


def get_actor(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Actor:
    if creds is None:
        raise UnauthorizedError("missing bearer token")
    return decode_actor(creds.credentials)
