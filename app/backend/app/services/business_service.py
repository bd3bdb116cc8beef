"""Business registration, login and tenant settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_CATALOG,
    UserRole,
    role_display_name,
    split_permission,
)
from app.core.security import create_access_token, hash_password, verify_password
from app.db.rls import release_rls_context, set_rls_context
from app.models.entities import Business, Permission, Role, RolePermission, User
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RegistrationData:
    business_name: str
    owner_email: str
    owner_full_name: str
    password: str
    currency: str = "USD"
    timezone: str = "UTC"


@dataclass(slots=True)
class BusinessUpdateData:
    name: str | None = None
    currency: str | None = None
    timezone: str | None = None


@dataclass(slots=True)
class AuthResult:
    business: Business
    user: User
    token: str


class BusinessService:
    """Tenant lifecycle: registration, authentication and business settings."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_business(business: Business) -> dict[str, object]:
        return {
            "id": str(business.id),
            "name": business.name,
            "currency": business.currency,
            "timezone": business.timezone,
            "active": business.active,
            "created_at": business.created_at.isoformat(),
            "updated_at": business.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_user(user: User) -> dict[str, object]:
        return {
            "id": str(user.id),
            "business_id": str(user.business_id),
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role.value,
            "role_display_name": role_display_name(user.role),
            "department_id": str(user.department_id) if user.department_id else None,
            "active": user.active,
            "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
            "created_at": user.created_at.isoformat(),
        }

    # ---------- Seeding ----------
    def ensure_permission_catalog(self) -> None:
        """Insert catalog permissions missing from the shared ``permissions`` table."""

        existing = self.repo.list_permission_names()
        for name in PERMISSION_CATALOG:
            if name in existing:
                continue
            resource, action = split_permission(name)
            self.db.add(
                Permission(
                    name=name,
                    resource=resource,
                    action=action,
                    description=f"{action.replace('_', ' ').title()} {resource.replace('_', ' ')}",
                )
            )
        self.db.flush()

    def _seed_system_roles(self, business: Business) -> None:
        now = datetime.utcnow()
        for role_name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
            role = self.repo.add(Role(business_id=business.id, name=role_name, is_system_role=True, updated_at=now))
            for permission in permissions:
                self.db.add(RolePermission(role_id=role.id, permission_name=permission))
        self.db.flush()

    # ---------- Registration and login ----------
    def register(self, data: RegistrationData) -> AuthResult:
        email = data.owner_email.strip().lower()
        if self.repo.get_user_by_email(email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.")

        now = datetime.utcnow()
        try:
            self.ensure_permission_catalog()
            business = self.repo.add(
                Business(
                    name=data.business_name.strip(),
                    currency=data.currency.upper(),
                    timezone=data.timezone,
                    active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
            # Tenant tables below are policy-checked against the new business.
            set_rls_context(self.db, business_id=business.id)
            self._seed_system_roles(business)
            owner = self.repo.add(
                User(
                    business_id=business.id,
                    email=email,
                    full_name=data.owner_full_name.strip(),
                    password_hash=hash_password(data.password),
                    role=UserRole.OWNER,
                    active=True,
                    last_login_at=now,
                    created_at=now,
                    updated_at=now,
                )
            )
            self.audit.record(
                actor_user_id=owner.id,
                business_id=business.id,
                entity_name="business",
                entity_id=business.id,
                action_type="create",
                after=self.serialize_business(business),
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Business registration conflicts with existing records.",
            ) from exc
        finally:
            release_rls_context(self.db)

        self.db.refresh(business)
        self.db.refresh(owner)
        logger.info("Registered business %s with owner %s", business.id, owner.id)
        token = create_access_token(user_id=owner.id, business_id=business.id, role=owner.role)
        return AuthResult(business=business, user=owner, token=token)

    def login(self, *, email: str, password: str) -> AuthResult:
        user = self.repo.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password.")
        if not user.active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated.")

        business = self.repo.get_business(user.business_id)
        if business is None or not business.active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Business is not active.")

        user.last_login_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)

        token = create_access_token(user_id=user.id, business_id=business.id, role=user.role)
        return AuthResult(business=business, user=user, token=token)

    # ---------- Current business ----------
    def get_current_business(self, *, context: RequestUserContext) -> Business:
        business = self.repo.get_business(context.business_id)
        if business is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found.")
        return business

    def get_user(self, *, context: RequestUserContext) -> User:
        user = self.repo.get_user(context.business_id, context.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def update_business(self, *, context: RequestUserContext, data: BusinessUpdateData) -> Business:
        business = self.get_current_business(context=context)
        before = self.serialize_business(business)

        if data.name is not None:
            business.name = data.name.strip()
        if data.currency is not None:
            business.currency = data.currency.upper()
        if data.timezone is not None:
            business.timezone = data.timezone
        business.updated_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="business",
            entity_id=business.id,
            action_type="update",
            before=before,
            after=self.serialize_business(business),
        )
        self.db.commit()
        self.db.refresh(business)
        logger.info("Business %s settings updated by %s", business.id, context.user_id)
        return business
