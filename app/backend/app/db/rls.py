"""Per-request row-level-security context for tenant isolation.

PostgreSQL policies read ``app.current_business_id`` (and
``app.current_user_id`` for audit triggers) through ``current_setting``.
The application only sets and clears those values; enforcement is done by
the policies created in the migrations.

Settings are transaction-local (``set_config(..., true)``) and re-applied at
the start of every transaction the session opens, so a pooled connection
never carries a tenant scope past the request that set it.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.orm import Session

from app.core.config import get_settings

logger = logging.getLogger(__name__)

BUSINESS_SETTING = "app.current_business_id"
USER_SETTING = "app.current_user_id"

_SCOPE_KEY = "rls_scope"
_SET_CONFIG = text("SELECT set_config(:name, :value, true)")


def _rls_applies(session: Session) -> bool:
    if not get_settings().rls_enabled:
        return False
    bind = session.get_bind()
    return bind.dialect.name == "postgresql"


def _apply_scope(executor, business_id: str, user_id: str) -> None:
    executor.execute(_SET_CONFIG, {"name": BUSINESS_SETTING, "value": business_id})
    executor.execute(_SET_CONFIG, {"name": USER_SETTING, "value": user_id})


@event.listens_for(Session, "after_begin")
def _reapply_scope(session: Session, transaction, connection) -> None:
    scope = session.info.get(_SCOPE_KEY)
    if scope is not None:
        _apply_scope(connection, *scope)


def set_rls_context(session: Session, *, business_id: UUID, user_id: UUID | None = None) -> None:
    """Scope the session to one business (and optionally user)."""

    if not _rls_applies(session):
        return

    scope = (str(business_id), str(user_id) if user_id is not None else "")
    session.info[_SCOPE_KEY] = scope
    if session.in_transaction():
        _apply_scope(session, *scope)
    logger.debug("RLS context set for business %s", business_id)


def release_rls_context(session: Session) -> None:
    """Forget the tenant scope; later transactions run unscoped."""

    if session.info.pop(_SCOPE_KEY, None) is not None:
        logger.debug("RLS context released")


def current_rls_scope(session: Session) -> tuple[str, str] | None:
    return session.info.get(_SCOPE_KEY)
