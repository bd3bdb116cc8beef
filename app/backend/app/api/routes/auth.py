"""Business registration, login and current-user endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import success_response
from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.services.business_service import AuthResult, BusinessService, RegistrationData
from app.services.permission_service import PermissionService

router = APIRouter(tags=["auth"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterPayload(BaseModel):
    business_name: str = Field(min_length=1, max_length=255)
    owner_email: str = Field(min_length=3, max_length=320, pattern=EMAIL_PATTERN)
    owner_full_name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8, max_length=128)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    timezone: str = Field(default="UTC", min_length=1, max_length=64)


class LoginPayload(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=128)


def _auth_payload(result: AuthResult) -> dict[str, object]:
    return {
        "business": BusinessService.serialize_business(result.business),
        "user": BusinessService.serialize_user(result.user),
        "token": result.token,
        "token_type": "bearer",
    }


@router.post("/businesses/register", status_code=status.HTTP_201_CREATED)
def register_business(payload: RegisterPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    """Create a business with its owner account and return a bearer token."""

    result = BusinessService(db).register(
        RegistrationData(
            business_name=payload.business_name,
            owner_email=payload.owner_email,
            owner_full_name=payload.owner_full_name,
            password=payload.password,
            currency=payload.currency,
            timezone=payload.timezone,
        )
    )
    return success_response(_auth_payload(result))


@router.post("/auth/login")
def login(payload: LoginPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    result = BusinessService(db).login(email=payload.email, password=payload.password)
    return success_response(_auth_payload(result))


@router.get("/auth/me")
def current_user(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    user = BusinessService(db).get_user(context=context)
    data = BusinessService.serialize_user(user)
    data.update(PermissionService.describe_context(context))
    return success_response(data)
