"""Staff accounts and the role assignment rules around them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.permissions import UserRole, get_assignable_roles, role_display_name
from app.core.security import hash_password
from app.models.entities import Department, User
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService
from app.services.business_service import BusinessService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StaffCreateData:
    email: str
    full_name: str
    role: UserRole
    password: str
    department_id: UUID | None = None


@dataclass(slots=True)
class StaffUpdateData:
    full_name: str | None = None
    role: UserRole | None = None
    department_id: UUID | None = None
    active: bool | None = None


class StaffService:
    """Service implementing staff management within one business."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)

    serialize_staff = staticmethod(BusinessService.serialize_user)

    @staticmethod
    def assignable_roles_payload(role: UserRole) -> list[dict[str, str]]:
        return [{"value": item.value, "label": role_display_name(item)} for item in get_assignable_roles(role)]

    # ---------- Guards ----------
    @staticmethod
    def _ensure_can_assign(context: RequestUserContext, role: UserRole) -> None:
        if role not in get_assignable_roles(context.role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{role.value}' cannot be assigned by a {context.role.value}.",
            )

    def _ensure_department(self, context: RequestUserContext, department_id: UUID | None) -> None:
        if department_id is None:
            return
        if self.repo.get_scoped(Department, context.business_id, department_id) is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Department does not belong to this business.",
            )

    def _get_staff(self, context: RequestUserContext, user_id: UUID) -> User:
        user = self.repo.get_user(context.business_id, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found.")
        return user

    # ---------- Queries ----------
    def list_staff(
        self,
        *,
        context: RequestUserContext,
        role: UserRole | None = None,
        active: bool | None = None,
    ) -> list[User]:
        conditions = []
        if role is not None:
            conditions.append(User.role == role)
        if active is not None:
            conditions.append(User.active.is_(active))
        return self.repo.list_scoped(User, context.business_id, *conditions, order_by=User.full_name.asc())

    def get_staff(self, *, context: RequestUserContext, user_id: UUID) -> User:
        return self._get_staff(context, user_id)

    # ---------- Mutations ----------
    def create_staff(self, *, context: RequestUserContext, data: StaffCreateData) -> User:
        self._ensure_can_assign(context, data.role)
        self._ensure_department(context, data.department_id)

        email = data.email.strip().lower()
        if self.repo.get_user_by_email(email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.")

        now = datetime.utcnow()
        user = self.repo.add(
            User(
                business_id=context.business_id,
                email=email,
                full_name=data.full_name.strip(),
                password_hash=hash_password(data.password),
                role=data.role,
                department_id=data.department_id,
                active=True,
                created_at=now,
                updated_at=now,
            )
        )
        self.audit.record_for(
            context,
            entity_name="staff",
            entity_id=user.id,
            action_type="create",
            after=self.serialize_staff(user),
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered.") from exc

        self.db.refresh(user)
        logger.info("Staff %s created in business %s", user.id, context.business_id)
        return user

    def update_staff(self, *, context: RequestUserContext, user_id: UUID, data: StaffUpdateData) -> User:
        user = self._get_staff(context, user_id)
        if user.role is UserRole.OWNER and user.id != context.user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The business owner cannot be modified.")
        if user.id != context.user_id:
            # Other accounts are only editable from a higher rank.
            self._ensure_can_assign(context, user.role)

        if data.role is not None and data.role != user.role:
            # Both the current and the new role must sit below the actor.
            self._ensure_can_assign(context, user.role)
            self._ensure_can_assign(context, data.role)
        self._ensure_department(context, data.department_id)

        before = self.serialize_staff(user)
        if data.full_name is not None:
            user.full_name = data.full_name.strip()
        if data.role is not None:
            user.role = data.role
        if data.department_id is not None:
            user.department_id = data.department_id
        if data.active is not None:
            if not data.active:
                self._ensure_can_deactivate(context, user)
            user.active = data.active
        user.updated_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="staff",
            entity_id=user.id,
            action_type="update",
            before=before,
            after=self.serialize_staff(user),
        )
        self.db.commit()
        self.db.refresh(user)
        return user

    @staticmethod
    def _ensure_can_deactivate(context: RequestUserContext, user: User) -> None:
        if user.id == context.user_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="You cannot deactivate your own account.",
            )
        if user.role is UserRole.OWNER:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="The business owner cannot be deactivated.",
            )
        StaffService._ensure_can_assign(context, user.role)

    def deactivate_staff(self, *, context: RequestUserContext, user_id: UUID) -> User:
        user = self._get_staff(context, user_id)
        self._ensure_can_deactivate(context, user)

        before = self.serialize_staff(user)
        user.active = False
        user.updated_at = datetime.utcnow()
        self.audit.record_for(
            context,
            entity_name="staff",
            entity_id=user.id,
            action_type="deactivate",
            before=before,
            after=self.serialize_staff(user),
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info("Staff %s deactivated by %s", user.id, context.user_id)
        return user
