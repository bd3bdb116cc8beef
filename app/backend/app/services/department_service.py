"""Department hierarchy management."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import Department
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService

_UNSET = object()


@dataclass(slots=True)
class DepartmentCreateData:
    name: str
    code: str
    description: str | None = None
    parent_department_id: UUID | None = None
    department_type: str = "operations"
    sort_order: int = 0


@dataclass(slots=True)
class DepartmentUpdateData:
    name: str | None = None
    code: str | None = None
    description: str | None = None
    parent_department_id: UUID | None | object = _UNSET
    department_type: str | None = None
    sort_order: int | None = None
    active: bool | None = None


class DepartmentService:
    """Service implementing department CRUD and the parent/child tree."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)

    @staticmethod
    def serialize_department(department: Department) -> dict[str, object]:
        return {
            "id": str(department.id),
            "business_id": str(department.business_id),
            "name": department.name,
            "code": department.code,
            "description": department.description,
            "parent_department_id": (
                str(department.parent_department_id) if department.parent_department_id else None
            ),
            "department_type": department.department_type,
            "sort_order": department.sort_order,
            "active": department.active,
            "created_at": department.created_at.isoformat(),
            "updated_at": department.updated_at.isoformat(),
        }

    def _get(self, context: RequestUserContext, department_id: UUID) -> Department:
        department = self.repo.get_scoped(Department, context.business_id, department_id)
        if department is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found.")
        return department

    def _ensure_parent(self, context: RequestUserContext, parent_id: UUID | None) -> None:
        if parent_id is None:
            return
        if self.repo.get_scoped(Department, context.business_id, parent_id) is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Parent department does not belong to this business.",
            )

    def _ensure_no_cycle(self, context: RequestUserContext, department_id: UUID, parent_id: UUID | None) -> None:
        parents = {
            row.id: row.parent_department_id for row in self.repo.list_scoped(Department, context.business_id)
        }
        seen: set[UUID] = set()
        current = parent_id
        while current is not None and current not in seen:
            if current == department_id:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="A department cannot be its own ancestor.",
                )
            seen.add(current)
            current = parents.get(current)

    def _commit_conflict_checked(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Department code already exists in this business.",
            ) from exc

    # ---------- Queries ----------
    def list_departments(self, *, context: RequestUserContext) -> list[Department]:
        return self.repo.list_scoped(
            Department,
            context.business_id,
            order_by=(Department.sort_order.asc(), Department.name.asc()),
        )

    def get_department(self, *, context: RequestUserContext, department_id: UUID) -> Department:
        return self._get(context, department_id)

    def department_hierarchy(self, *, context: RequestUserContext) -> list[dict[str, object]]:
        """Nested tree of departments; orphans of missing parents become roots."""

        departments = self.list_departments(context=context)
        known = {department.id for department in departments}
        children: dict[UUID | None, list[Department]] = {}
        for department in departments:
            parent = department.parent_department_id if department.parent_department_id in known else None
            children.setdefault(parent, []).append(department)

        def build(parent_id: UUID | None) -> list[dict[str, object]]:
            nodes = []
            for department in children.get(parent_id, []):
                node = self.serialize_department(department)
                node["children"] = build(department.id)
                nodes.append(node)
            return nodes

        return build(None)

    # ---------- Mutations ----------
    def create_department(self, *, context: RequestUserContext, data: DepartmentCreateData) -> Department:
        self._ensure_parent(context, data.parent_department_id)

        now = datetime.utcnow()
        department = Department(
            business_id=context.business_id,
            name=data.name.strip(),
            code=data.code.strip().upper(),
            description=data.description.strip() if data.description else None,
            parent_department_id=data.parent_department_id,
            department_type=data.department_type,
            sort_order=data.sort_order,
            active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(department)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Department code already exists in this business.",
            ) from exc

        self.audit.record_for(
            context,
            entity_name="department",
            entity_id=department.id,
            action_type="create",
            after=self.serialize_department(department),
        )
        self._commit_conflict_checked()
        self.db.refresh(department)
        return department

    def update_department(
        self,
        *,
        context: RequestUserContext,
        department_id: UUID,
        data: DepartmentUpdateData,
    ) -> Department:
        department = self._get(context, department_id)

        if data.parent_department_id is not _UNSET:
            parent_id = data.parent_department_id
            self._ensure_parent(context, parent_id)
            self._ensure_no_cycle(context, department.id, parent_id)

        before = self.serialize_department(department)
        if data.name is not None:
            department.name = data.name.strip()
        if data.code is not None:
            department.code = data.code.strip().upper()
        if data.description is not None:
            department.description = data.description.strip() or None
        if data.parent_department_id is not _UNSET:
            department.parent_department_id = data.parent_department_id
        if data.department_type is not None:
            department.department_type = data.department_type
        if data.sort_order is not None:
            department.sort_order = data.sort_order
        if data.active is not None:
            department.active = data.active
        department.updated_at = datetime.utcnow()

        self.audit.record_for(
            context,
            entity_name="department",
            entity_id=department.id,
            action_type="update",
            before=before,
            after=self.serialize_department(department),
        )
        self._commit_conflict_checked()
        self.db.refresh(department)
        return department

    def delete_department(self, *, context: RequestUserContext, department_id: UUID) -> None:
        department = self._get(context, department_id)

        if self.repo.child_department_count(department.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete department with child departments.",
            )
        if self.repo.staff_count_for_department(department.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete department with assigned staff.",
            )

        self.audit.record_for(
            context,
            entity_name="department",
            entity_id=department.id,
            action_type="delete",
            before=self.serialize_department(department),
        )
        self.repo.delete(department)
        self.db.commit()
