"""Customers, service catalog, packages and jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import (
    Customer,
    Job,
    JobPriority,
    JobStatus,
    PackageService,
    Service,
    ServicePackage,
    User,
)
from app.repositories.business_repository import BusinessRepository
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _money(value: Decimal | None) -> str | None:
    return str(_q2(value)) if value is not None else None


@dataclass(slots=True)
class CustomerCreateData:
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    notes: str | None = None


@dataclass(slots=True)
class CustomerUpdateData:
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    notes: str | None = None
    active: bool | None = None


@dataclass(slots=True)
class ServiceCreateData:
    name: str
    base_price: Decimal
    description: str | None = None
    duration_minutes: int = 60
    category: str = "General"


@dataclass(slots=True)
class ServiceUpdateData:
    name: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    duration_minutes: int | None = None
    category: str | None = None
    active: bool | None = None


@dataclass(slots=True)
class PackageServiceInput:
    service_id: UUID
    is_required: bool = False
    default_quantity: int = 1


@dataclass(slots=True)
class PackageCreateData:
    name: str
    base_price: Decimal
    description: str | None = None
    category: str = "General"
    is_customizable: bool = False
    min_services: int = 1
    max_services: int | None = None
    services: list[PackageServiceInput] = field(default_factory=list)


@dataclass(slots=True)
class PackageUpdateData:
    name: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    category: str | None = None
    is_customizable: bool | None = None
    min_services: int | None = None
    max_services: int | None = None
    active: bool | None = None
    services: list[PackageServiceInput] | None = None


@dataclass(slots=True)
class JobCreateData:
    title: str
    description: str | None = None
    customer_id: UUID | None = None
    service_id: UUID | None = None
    scheduled_date: date | None = None
    priority: JobPriority = JobPriority.MEDIUM
    estimated_cost: Decimal | None = None


@dataclass(slots=True)
class JobUpdateData:
    title: str | None = None
    description: str | None = None
    customer_id: UUID | None = None
    service_id: UUID | None = None
    scheduled_date: date | None = None
    priority: JobPriority | None = None
    status: JobStatus | None = None
    estimated_cost: Decimal | None = None


class CatalogService:
    """Service implementing the customer-facing catalog and job tracking."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)
        self.audit = AuditService(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_customer(customer: Customer) -> dict[str, object]:
        return {
            "id": str(customer.id),
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "email": customer.email,
            "phone": customer.phone,
            "notes": customer.notes,
            "active": customer.active,
            "created_at": customer.created_at.isoformat(),
            "updated_at": customer.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_service(service: Service) -> dict[str, object]:
        return {
            "id": str(service.id),
            "name": service.name,
            "description": service.description,
            "base_price": _money(service.base_price),
            "duration_minutes": service.duration_minutes,
            "category": service.category,
            "active": service.active,
            "created_at": service.created_at.isoformat(),
            "updated_at": service.updated_at.isoformat(),
        }

    def serialize_package(self, package: ServicePackage) -> dict[str, object]:
        return {
            "id": str(package.id),
            "name": package.name,
            "description": package.description,
            "base_price": _money(package.base_price),
            "category": package.category,
            "is_customizable": package.is_customizable,
            "min_services": package.min_services,
            "max_services": package.max_services,
            "active": package.active,
            "services": [
                {
                    "service_id": str(link.service_id),
                    "is_required": link.is_required,
                    "default_quantity": link.default_quantity,
                }
                for link in self.repo.list_package_services(package.id)
            ],
            "created_at": package.created_at.isoformat(),
            "updated_at": package.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_job(job: Job) -> dict[str, object]:
        return {
            "id": str(job.id),
            "job_number": job.job_number,
            "title": job.title,
            "description": job.description,
            "customer_id": str(job.customer_id) if job.customer_id else None,
            "service_id": str(job.service_id) if job.service_id else None,
            "assigned_to": str(job.assigned_to) if job.assigned_to else None,
            "scheduled_date": job.scheduled_date.isoformat() if job.scheduled_date else None,
            "priority": job.priority.value,
            "status": job.status.value,
            "estimated_cost": _money(job.estimated_cost),
            "created_at": job.created_at.isoformat(),
            "updated_at": job.updated_at.isoformat(),
        }

    # ---------- Shared lookups ----------
    def _require(self, context: RequestUserContext, model: type, entity_id: UUID, label: str):
        entity = self.repo.get_scoped(model, context.business_id, entity_id)
        if entity is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found.")
        return entity

    def _ensure_reference(self, context: RequestUserContext, model: type, entity_id: UUID | None, label: str) -> None:
        if entity_id is None:
            return
        if self.repo.get_scoped(model, context.business_id, entity_id) is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{label} does not belong to this business.",
            )

    def _record(self, context: RequestUserContext, entity_name: str, entity_id: UUID, action: str, **payloads) -> None:
        self.audit.record_for(context, entity_name=entity_name, entity_id=entity_id, action_type=action, **payloads)

    # ---------- Customers ----------
    def list_customers(self, *, context: RequestUserContext, active: bool | None = None) -> list[Customer]:
        conditions = [Customer.active.is_(active)] if active is not None else []
        return self.repo.list_scoped(
            Customer,
            context.business_id,
            *conditions,
            order_by=(Customer.last_name.asc(), Customer.first_name.asc()),
        )

    def get_customer(self, *, context: RequestUserContext, customer_id: UUID) -> Customer:
        return self._require(context, Customer, customer_id, "Customer")

    def create_customer(self, *, context: RequestUserContext, data: CustomerCreateData) -> Customer:
        now = datetime.utcnow()
        customer = self.repo.add(
            Customer(
                business_id=context.business_id,
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                email=data.email.strip().lower() if data.email else None,
                phone=data.phone,
                notes=data.notes,
                active=True,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )
        self._record(context, "customer", customer.id, "create", after=self.serialize_customer(customer))
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def update_customer(self, *, context: RequestUserContext, customer_id: UUID, data: CustomerUpdateData) -> Customer:
        customer = self.get_customer(context=context, customer_id=customer_id)
        before = self.serialize_customer(customer)

        if data.first_name is not None:
            customer.first_name = data.first_name.strip()
        if data.last_name is not None:
            customer.last_name = data.last_name.strip()
        if data.email is not None:
            customer.email = data.email.strip().lower() or None
        if data.phone is not None:
            customer.phone = data.phone or None
        if data.notes is not None:
            customer.notes = data.notes or None
        if data.active is not None:
            customer.active = data.active
        customer.updated_at = datetime.utcnow()

        self._record(context, "customer", customer.id, "update", before=before, after=self.serialize_customer(customer))
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def delete_customer(self, *, context: RequestUserContext, customer_id: UUID) -> None:
        customer = self.get_customer(context=context, customer_id=customer_id)
        if self.repo.list_scoped(Job, context.business_id, Job.customer_id == customer.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot delete customer with jobs.")
        self._record(context, "customer", customer.id, "delete", before=self.serialize_customer(customer))
        self.repo.delete(customer)
        self.db.commit()

    # ---------- Services ----------
    def list_services(self, *, context: RequestUserContext, category: str | None = None) -> list[Service]:
        conditions = [Service.category == category] if category else []
        return self.repo.list_scoped(Service, context.business_id, *conditions, order_by=Service.name.asc())

    def get_service(self, *, context: RequestUserContext, service_id: UUID) -> Service:
        return self._require(context, Service, service_id, "Service")

    def create_service(self, *, context: RequestUserContext, data: ServiceCreateData) -> Service:
        now = datetime.utcnow()
        service = self.repo.add(
            Service(
                business_id=context.business_id,
                name=data.name.strip(),
                description=data.description,
                base_price=_q2(data.base_price),
                duration_minutes=data.duration_minutes,
                category=data.category.strip() or "General",
                active=True,
                created_at=now,
                updated_at=now,
            )
        )
        self._record(context, "service", service.id, "create", after=self.serialize_service(service))
        self.db.commit()
        self.db.refresh(service)
        return service

    def update_service(self, *, context: RequestUserContext, service_id: UUID, data: ServiceUpdateData) -> Service:
        service = self.get_service(context=context, service_id=service_id)
        before = self.serialize_service(service)

        if data.name is not None:
            service.name = data.name.strip()
        if data.base_price is not None:
            service.base_price = _q2(data.base_price)
        if data.description is not None:
            service.description = data.description or None
        if data.duration_minutes is not None:
            service.duration_minutes = data.duration_minutes
        if data.category is not None:
            service.category = data.category.strip() or "General"
        if data.active is not None:
            service.active = data.active
        service.updated_at = datetime.utcnow()

        self._record(context, "service", service.id, "update", before=before, after=self.serialize_service(service))
        self.db.commit()
        self.db.refresh(service)
        return service

    def delete_service(self, *, context: RequestUserContext, service_id: UUID) -> None:
        service = self.get_service(context=context, service_id=service_id)
        used_by_jobs = self.repo.list_scoped(Job, context.business_id, Job.service_id == service.id)
        if self.repo.package_count_for_service(service.id) or used_by_jobs:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete a service used by packages or jobs.",
            )
        self._record(context, "service", service.id, "delete", before=self.serialize_service(service))
        self.repo.delete(service)
        self.db.commit()

    # ---------- Packages ----------
    def _validate_package_services(
        self,
        context: RequestUserContext,
        services: list[PackageServiceInput],
        *,
        min_services: int,
        max_services: int | None,
    ) -> None:
        if max_services is not None and max_services < min_services:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="max_services must be greater than or equal to min_services.",
            )
        seen: set[UUID] = set()
        for entry in services:
            if entry.service_id in seen:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Service {entry.service_id} is listed more than once.",
                )
            seen.add(entry.service_id)
            self._ensure_reference(context, Service, entry.service_id, f"Service {entry.service_id}")

    def _link_services(self, package: ServicePackage, services: list[PackageServiceInput]) -> None:
        for entry in services:
            self.db.add(
                PackageService(
                    package_id=package.id,
                    service_id=entry.service_id,
                    is_required=entry.is_required,
                    default_quantity=entry.default_quantity,
                )
            )
        self.db.flush()

    def list_packages(self, *, context: RequestUserContext) -> list[ServicePackage]:
        return self.repo.list_scoped(ServicePackage, context.business_id, order_by=ServicePackage.name.asc())

    def get_package(self, *, context: RequestUserContext, package_id: UUID) -> ServicePackage:
        return self._require(context, ServicePackage, package_id, "Package")

    def create_package(self, *, context: RequestUserContext, data: PackageCreateData) -> ServicePackage:
        self._validate_package_services(
            context,
            data.services,
            min_services=data.min_services,
            max_services=data.max_services,
        )

        now = datetime.utcnow()
        package = self.repo.add(
            ServicePackage(
                business_id=context.business_id,
                name=data.name.strip(),
                description=data.description,
                base_price=_q2(data.base_price),
                category=data.category.strip() or "General",
                is_customizable=data.is_customizable,
                min_services=data.min_services,
                max_services=data.max_services,
                active=True,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )
        self._link_services(package, data.services)
        self._record(context, "package", package.id, "create", after=self.serialize_package(package))
        self.db.commit()
        self.db.refresh(package)
        return package

    def update_package(
        self,
        *,
        context: RequestUserContext,
        package_id: UUID,
        data: PackageUpdateData,
    ) -> ServicePackage:
        package = self.get_package(context=context, package_id=package_id)
        min_services = data.min_services if data.min_services is not None else package.min_services
        max_services = data.max_services if data.max_services is not None else package.max_services
        self._validate_package_services(
            context,
            data.services or [],
            min_services=min_services,
            max_services=max_services,
        )

        before = self.serialize_package(package)
        if data.name is not None:
            package.name = data.name.strip()
        if data.base_price is not None:
            package.base_price = _q2(data.base_price)
        if data.description is not None:
            package.description = data.description or None
        if data.category is not None:
            package.category = data.category.strip() or "General"
        if data.is_customizable is not None:
            package.is_customizable = data.is_customizable
        package.min_services = min_services
        package.max_services = max_services
        if data.active is not None:
            package.active = data.active
        if data.services is not None:
            self.repo.clear_package_services(package.id)
            self._link_services(package, data.services)
        package.updated_at = datetime.utcnow()

        self._record(context, "package", package.id, "update", before=before, after=self.serialize_package(package))
        self.db.commit()
        self.db.refresh(package)
        return package

    def delete_package(self, *, context: RequestUserContext, package_id: UUID) -> None:
        package = self.get_package(context=context, package_id=package_id)
        self._record(context, "package", package.id, "delete", before=self.serialize_package(package))
        self.repo.clear_package_services(package.id)
        self.repo.delete(package)
        self.db.commit()

    # ---------- Jobs ----------
    def list_jobs(
        self,
        *,
        context: RequestUserContext,
        status_filter: JobStatus | None = None,
        assigned_to: UUID | None = None,
    ) -> list[Job]:
        conditions = []
        if status_filter is not None:
            conditions.append(Job.status == status_filter)
        if assigned_to is not None:
            conditions.append(Job.assigned_to == assigned_to)
        return self.repo.list_scoped(Job, context.business_id, *conditions, order_by=Job.created_at.desc())

    def get_job(self, *, context: RequestUserContext, job_id: UUID) -> Job:
        return self._require(context, Job, job_id, "Job")

    def create_job(self, *, context: RequestUserContext, data: JobCreateData) -> Job:
        self._ensure_reference(context, Customer, data.customer_id, "Customer")
        self._ensure_reference(context, Service, data.service_id, "Service")

        now = datetime.utcnow()
        sequence = self.repo.next_job_sequence(context.business_id)
        job = self.repo.add(
            Job(
                business_id=context.business_id,
                job_number=f"JOB-{sequence:06d}",
                title=data.title.strip(),
                description=data.description,
                customer_id=data.customer_id,
                service_id=data.service_id,
                scheduled_date=data.scheduled_date,
                priority=data.priority,
                status=JobStatus.PENDING,
                estimated_cost=_q2(data.estimated_cost) if data.estimated_cost is not None else None,
                created_by=context.user_id,
                created_at=now,
                updated_at=now,
            )
        )
        self._record(context, "job", job.id, "create", after=self.serialize_job(job))
        self.db.commit()
        self.db.refresh(job)
        return job

    def update_job(self, *, context: RequestUserContext, job_id: UUID, data: JobUpdateData) -> Job:
        job = self.get_job(context=context, job_id=job_id)
        self._ensure_reference(context, Customer, data.customer_id, "Customer")
        self._ensure_reference(context, Service, data.service_id, "Service")

        before = self.serialize_job(job)
        if data.title is not None:
            job.title = data.title.strip()
        if data.description is not None:
            job.description = data.description or None
        if data.customer_id is not None:
            job.customer_id = data.customer_id
        if data.service_id is not None:
            job.service_id = data.service_id
        if data.scheduled_date is not None:
            job.scheduled_date = data.scheduled_date
        if data.priority is not None:
            job.priority = data.priority
        if data.status is not None:
            job.status = data.status
        if data.estimated_cost is not None:
            job.estimated_cost = _q2(data.estimated_cost)
        job.updated_at = datetime.utcnow()

        self._record(context, "job", job.id, "update", before=before, after=self.serialize_job(job))
        self.db.commit()
        self.db.refresh(job)
        return job

    def assign_job(self, *, context: RequestUserContext, job_id: UUID, user_id: UUID) -> Job:
        job = self.get_job(context=context, job_id=job_id)
        assignee = self.repo.get_scoped(User, context.business_id, user_id)
        if assignee is None or not assignee.active:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Assignee must be an active staff member of this business.",
            )

        before = self.serialize_job(job)
        job.assigned_to = assignee.id
        job.updated_at = datetime.utcnow()
        self._record(context, "job", job.id, "assign", before=before, after=self.serialize_job(job))
        self.db.commit()
        self.db.refresh(job)
        logger.info("Job %s assigned to %s", job.job_number, assignee.id)
        return job

    def delete_job(self, *, context: RequestUserContext, job_id: UUID) -> None:
        job = self.get_job(context=context, job_id=job_id)
        self._record(context, "job", job.id, "delete", before=self.serialize_job(job))
        self.repo.delete(job)
        self.db.commit()
