"""Job tracking endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.models.entities import JobPriority, JobStatus
from app.services.catalog_service import CatalogService, JobCreateData, JobUpdateData

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobCreatePayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    customer_id: UUID | None = None
    service_id: UUID | None = None
    scheduled_date: date | None = None
    priority: JobPriority = JobPriority.MEDIUM
    estimated_cost: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)


class JobUpdatePayload(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    customer_id: UUID | None = None
    service_id: UUID | None = None
    scheduled_date: date | None = None
    priority: JobPriority | None = None
    status: JobStatus | None = None
    estimated_cost: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)


class JobAssignPayload(BaseModel):
    user_id: UUID


@router.get("")
def list_jobs(
    status_filter: JobStatus | None = Query(default=None, alias="status"),
    assigned_to: UUID | None = None,
    context: RequestUserContext = Depends(require_permission("job:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    items = service.list_jobs(context=context, status_filter=status_filter, assigned_to=assigned_to)
    return success_response([service.serialize_job(item) for item in items])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreatePayload,
    context: RequestUserContext = Depends(require_permission("job:create")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    job = service.create_job(context=context, data=JobCreateData(**payload.model_dump()))
    return success_response(service.serialize_job(job))


@router.get("/{job_id}")
def get_job(
    job_id: UUID,
    context: RequestUserContext = Depends(require_permission("job:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    return success_response(service.serialize_job(service.get_job(context=context, job_id=job_id)))


@router.patch("/{job_id}")
def update_job(
    job_id: UUID,
    payload: JobUpdatePayload,
    context: RequestUserContext = Depends(require_permission("job:update")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    job = service.update_job(context=context, job_id=job_id, data=JobUpdateData(**payload.model_dump()))
    return success_response(service.serialize_job(job))


@router.post("/{job_id}/assign")
def assign_job(
    job_id: UUID,
    payload: JobAssignPayload,
    context: RequestUserContext = Depends(require_permission("job:assign")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CatalogService(db)
    job = service.assign_job(context=context, job_id=job_id, user_id=payload.user_id)
    return success_response(service.serialize_job(job))


@router.delete("/{job_id}")
def delete_job(
    job_id: UUID,
    context: RequestUserContext = Depends(require_permission("job:delete")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    CatalogService(db).delete_job(context=context, job_id=job_id)
    return success_response({"id": str(job_id)})
