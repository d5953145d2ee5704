"""API tests for administrative directory endpoints."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_voucherflow.db")

import pytest
from fastapi.testclient import TestClient

from voucherflow.core.roles import Role
from voucherflow.core.security import get_current_actor
from voucherflow.db import get_engine, session_scope
from voucherflow.main import app
from voucherflow.models import UserProfile
from voucherflow.models.base import Base
from voucherflow.schemas.actor import Actor


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def current() -> dict[str, Actor]:
    return {"actor": Actor(actor_id=1, role=Role.SUPER_USER)}


@pytest.fixture()
def client(current: dict[str, Actor]) -> TestClient:  # type: ignore[no-untyped-def]
    app.dependency_overrides[get_current_actor] = lambda: current["actor"]
    yield TestClient(app)
    app.dependency_overrides.pop(get_current_actor, None)


@pytest.fixture()
def pending_user() -> int:
    with session_scope() as session:
        user = UserProfile(email="newcomer@example.com", name="Newcomer")
        session.add(user)
        session.flush()
        return user.id


def test_pending_user_receives_company_role(client: TestClient, pending_user: int) -> None:
    response = client.get("/api/admin/users/pending")
    assert response.status_code == 200
    assert [user["id"] for user in response.json()] == [pending_user]

    company = client.post("/api/admin/companies", json={"name": "Acme"})
    assert company.status_code == 201
    company_id = company.json()["id"]

    response = client.patch(
        f"/api/admin/users/{pending_user}/role",
        json={"role": "payee", "company_id": company_id},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["role"] == "payee"
    assert payload["company_name"] == "Acme"
    assert payload["pending_approval"] is False

    assert client.get("/api/admin/users/pending").json() == []


def test_invalid_role_is_unprocessable(client: TestClient, pending_user: int) -> None:
    response = client.patch(
        f"/api/admin/users/{pending_user}/role", json={"role": "vendor"}
    )
    assert response.status_code == 422


def test_duplicate_bank_conflicts(client: TestClient) -> None:
    assert client.post("/api/admin/banks", json={"name": "First Bank"}).status_code == 201
    assert client.post("/api/admin/banks", json={"name": "First Bank"}).status_code == 409


def test_delete_company(client: TestClient) -> None:
    company_id = client.post("/api/admin/companies", json={"name": "Globex"}).json()["id"]

    assert client.delete(f"/api/admin/companies/{company_id}").status_code == 204
    assert client.delete(f"/api/admin/companies/{company_id}").status_code == 404


def test_non_super_user_is_forbidden(client: TestClient, current: dict[str, Actor]) -> None:
    current["actor"] = Actor(actor_id=2, role=Role.ADMIN)

    assert client.get("/api/admin/users").status_code == 403
