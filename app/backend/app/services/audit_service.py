"""Audit trail recording and listing."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import AuditEvent
from app.repositories.business_repository import BusinessRepository

MAX_AUDIT_LIMIT = 500


class AuditService:
    """Appends audit events inside the caller's transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BusinessRepository(db)

    def record(
        self,
        *,
        actor_user_id: UUID,
        business_id: UUID,
        entity_name: str,
        entity_id: UUID | str,
        action_type: str,
        before: dict[str, object] | None = None,
        after: dict[str, object] | None = None,
    ) -> AuditEvent:
        event = AuditEvent(
            actor_user_id=actor_user_id,
            business_id=business_id,
            entity_name=entity_name,
            entity_id=str(entity_id),
            action_type=action_type,
            before_payload=before,
            after_payload=after,
            created_at=datetime.utcnow(),
        )
        return self.repo.add(event)

    def record_for(
        self,
        context: RequestUserContext,
        *,
        entity_name: str,
        entity_id: UUID | str,
        action_type: str,
        before: dict[str, object] | None = None,
        after: dict[str, object] | None = None,
    ) -> AuditEvent:
        return self.record(
            actor_user_id=context.user_id,
            business_id=context.business_id,
            entity_name=entity_name,
            entity_id=entity_id,
            action_type=action_type,
            before=before,
            after=after,
        )

    def list_events(
        self,
        *,
        context: RequestUserContext,
        entity_name: str | None = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        bounded = max(1, min(limit, MAX_AUDIT_LIMIT))
        return self.repo.list_audit_events(context.business_id, entity_name=entity_name, limit=bounded)

    @staticmethod
    def serialize_event(event: AuditEvent) -> dict[str, object]:
        return {
            "id": str(event.id),
            "actor_user_id": str(event.actor_user_id),
            "entity_name": event.entity_name,
            "entity_id": event.entity_id,
            "action_type": event.action_type,
            "before": event.before_payload,
            "after": event.after_payload,
            "created_at": event.created_at.isoformat(),
        }
