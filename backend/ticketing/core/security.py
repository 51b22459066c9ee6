"""
Caller identity.

Tokens are issued by the identity provider; this service only verifies the
signature and reads the `sub` and `role` claims. No credentials are stored here.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ticketing.core.config import get_settings
from ticketing.core.exceptions import ForbiddenError, UnauthorizedError

ADMIN_ROLE = "admin"
DEFAULT_ROLE = "agent"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    id: str
    role: str = DEFAULT_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Actor:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise UnauthorizedError("Could not validate credentials")

    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Could not validate credentials")
    return Actor(id=str(subject), role=payload.get("role") or DEFAULT_ROLE)


def ensure_actor(actor: Optional[Actor]) -> Actor:
    """Every state-changing operation needs a caller."""
    if actor is None or not actor.id:
        raise UnauthorizedError("Authentication required")
    return actor


def ensure_admin(actor: Optional[Actor]) -> Actor:
    actor = ensure_actor(actor)
    if not actor.is_admin:
        raise ForbiddenError("Admin role required")
    return actor


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    if credentials is None:
        raise UnauthorizedError("Authentication required")
    return decode_access_token(credentials.credentials)


async def get_current_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    return ensure_admin(actor)
