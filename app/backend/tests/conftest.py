from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app

DEFAULT_PASSWORD = "correct-horse-1"


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register_business(
    client: TestClient,
    *,
    business_name: str = "Acme Cleaning",
    email: str = "owner@acme.test",
    full_name: str = "Olive Owner",
    password: str = DEFAULT_PASSWORD,
) -> tuple[dict[str, str], dict[str, object]]:
    response = client.post(
        "/api/businesses/register",
        json={
            "business_name": business_name,
            "owner_email": email,
            "owner_full_name": full_name,
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return bearer(data["token"]), data


def create_staff_member(
    client: TestClient,
    owner_headers: dict[str, str],
    *,
    email: str,
    role: str,
    full_name: str = "Team Member",
    password: str = DEFAULT_PASSWORD,
) -> tuple[dict[str, str], dict[str, object]]:
    """Create a staff account through the API and log in as it."""

    response = client.post(
        "/api/staff",
        headers=owner_headers,
        json={"email": email, "full_name": full_name, "role": role, "password": password},
    )
    assert response.status_code == 201, response.text
    staff = response.json()["data"]

    login = client.post("/api/auth/login", json={"email": email, "password": password})
    assert login.status_code == 200, login.text
    return bearer(login.json()["data"]["token"]), staff
