"""Password hashing and bearer token helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import HTTPException, status
from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from app.core.config import get_settings
from app.core.permissions import UserRole


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(*, user_id: UUID, business_id: UUID, role: UserRole) -> str:
    """Issue a signed HS256 token for an authenticated user."""

    settings = get_settings()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expires_minutes)
    claims = {
        "sub": str(user_id),
        "business_id": str(business_id),
        "role": role.value,
        "exp": expires_at,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> tuple[UUID, UUID]:
    """Return ``(user_id, business_id)`` from a valid token or raise 401."""

    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return UUID(claims["sub"]), UUID(claims["business_id"])
    except (JWTError, KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc
