from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from jose import jwt, JWTError

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from tradeguard.core.config import settings


# PINs are short, so a lighter Argon2 profile than for passwords is enough
_ph = PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_pin(pin: str) -> str:
    return _ph.hash(pin)


def verify_pin(pin: str, pin_hash: str) -> bool:
    try:
        return _ph.verify(pin_hash, pin)
    except (VerifyMismatchError, InvalidHashError):
        return False


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None

    @property
    def account_label(self) -> str:
        return self.email or self.user_id


def create_identity_token(identity: Identity, expires_minutes: int | None = None) -> str:
    """Bearer token carrying the identity claims this service reads (sub, email)."""
    now = datetime.now(timezone.utc)
    minutes = settings.JWT_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": identity.user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    if identity.email:
        claims["email"] = identity.email
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def identity_from_token(token: str) -> Identity | None:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if not claims.get("sub"):
        return None
    return Identity(user_id=str(claims["sub"]), email=claims.get("email"))


_security = HTTPBearer(auto_error=False)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> Identity:
    """
    Dependency: resolve the caller from the bearer token.
    Expects: Authorization: Bearer <token>
    Raises: HTTPException 401 before any security state is read
    """
    identity = identity_from_token(credentials.credentials) if credentials else None

    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return identity
