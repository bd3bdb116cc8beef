"""Authentication context extraction and permission guard utilities."""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.errors import PermissionDeniedError
from app.core.permissions import (
    PermissionToggle,
    UserRole,
    has_permission,
    owner_bypass_applies,
    resolve_denied_permissions,
    resolve_effective_permissions,
)
from app.core.security import decode_access_token
from app.db.dependencies import get_db_session
from app.db.rls import release_rls_context, set_rls_context
from app.models.entities import User
from app.repositories.business_repository import BusinessRepository

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from the bearer token and DB state."""

    user_id: UUID
    business_id: UUID
    email: str
    full_name: str
    role: UserRole
    permissions: tuple[str, ...]
    denied: tuple[str, ...] = ()

    @property
    def is_owner(self) -> bool:
        return self.role is UserRole.OWNER


def load_effective_permissions(
    db: Session,
    user: User,
    *,
    now: datetime | None = None,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Role grants for ``user`` adjusted by their feature toggles, plus active denials."""

    repo = BusinessRepository(db)
    role = repo.get_role(user.business_id, user.role)
    role_permissions = repo.list_role_permission_names(role.id) if role is not None else []
    toggles = [
        PermissionToggle(
            permission=toggle.permission_name,
            is_allowed=toggle.is_allowed,
            expires_at=_naive_utc(toggle.expires_at),
        )
        for toggle in repo.list_feature_toggles(user.business_id, user.id)
    ]
    now = now or datetime.utcnow()
    return (
        resolve_effective_permissions(role_permissions, toggles, now=now),
        resolve_denied_permissions(toggles, now=now),
    )


def _naive_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo while PostgreSQL keeps it; compare everything as naive UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def build_user_context(db: Session, user: User) -> RequestUserContext:
    permissions, denied = load_effective_permissions(db, user)
    return RequestUserContext(
        user_id=user.id,
        business_id=user.business_id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        permissions=permissions,
        denied=denied,
    )


def get_current_user_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db_session),
) -> Generator[RequestUserContext, None, None]:
    """Resolve the request actor and scope the session to their business.

    The RLS context is set before any tenant row is read and released when
    the request finishes, whatever its outcome.
    """

    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    user_id, business_id = decode_access_token(credentials.credentials)

    set_rls_context(db, business_id=business_id, user_id=user_id)
    try:
        user = BusinessRepository(db).get_user(business_id, user_id)
        if user is None or not user.active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

        yield build_user_context(db, user)
    finally:
        release_rls_context(db)


def ensure_permission(context: RequestUserContext, permission: str, request: Request | None = None) -> None:
    """Raise 403 unless ``context`` may perform ``permission``."""

    if owner_bypass_applies(context.role, permission):
        return
    if has_permission(context.permissions, permission, context.denied):
        return

    logger.warning(
        "Permission denied: user=%s permission=%s %s %s",
        context.user_id,
        permission,
        request.method if request is not None else "-",
        request.url.path if request is not None else "-",
    )
    raise PermissionDeniedError(required=permission)


def require_permission(permission: str):
    """Dependency factory requiring a single permission."""

    def dependency(
        request: Request,
        context: RequestUserContext = Depends(get_current_user_context),
    ) -> RequestUserContext:
        ensure_permission(context, permission, request)
        return context

    return dependency


def require_role(*roles: UserRole):
    """Dependency factory requiring one of the provided roles."""

    allowed = set(roles)

    def dependency(
        request: Request,
        context: RequestUserContext = Depends(get_current_user_context),
    ) -> RequestUserContext:
        if context.role not in allowed:
            logger.warning(
                "Role denied: user=%s role=%s %s %s",
                context.user_id,
                context.role.value,
                request.method,
                request.url.path,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this operation",
            )
        return context

    return dependency
