"""Current business settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, require_permission
from app.db.dependencies import get_db_session
from app.services.business_service import BusinessService, BusinessUpdateData

router = APIRouter(prefix="/businesses", tags=["businesses"])


class BusinessUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    timezone: str | None = Field(default=None, min_length=1, max_length=64)


@router.get("/current")
def get_current_business(
    context: RequestUserContext = Depends(require_permission("business:read")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    business = BusinessService(db).get_current_business(context=context)
    return success_response(BusinessService.serialize_business(business))


@router.patch("/current")
def update_current_business(
    payload: BusinessUpdatePayload,
    context: RequestUserContext = Depends(require_permission("business:settings")),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    business = BusinessService(db).update_business(
        context=context,
        data=BusinessUpdateData(
            name=payload.name,
            currency=payload.currency,
            timezone=payload.timezone,
        ),
    )
    return success_response(BusinessService.serialize_business(business))
