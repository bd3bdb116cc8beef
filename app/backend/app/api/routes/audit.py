"""Audit trail endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.audit_service import MAX_AUDIT_LIMIT, AuditService

router = APIRouter(tags=["audit"])


@router.get("/audit-events")
def list_audit_events(
    entity_name: str | None = None,
    limit: int = Query(default=100, ge=1, le=MAX_AUDIT_LIMIT),
    context: RequestUserContext = Depends(require_permission("audit:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = AuditService(db)
    events = service.list_events(context=context, entity_name=entity_name, limit=limit)
    return success_response([service.serialize_event(event) for event in events])
