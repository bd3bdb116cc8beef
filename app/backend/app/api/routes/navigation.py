"""Dashboard navigation filtered for the caller."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.responses import success_response
from app.core.auth import RequestUserContext, get_current_user_context
from app.core.navigation import NAVIGATION, filter_navigation
from app.core.permissions import expand_permissions

router = APIRouter(tags=["navigation"])


@router.get("/navigation")
def get_navigation(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    visible = filter_navigation(NAVIGATION, context.role, expand_permissions(context.permissions, context.denied))
    return success_response([item.to_dict() for item in visible])
