"""API tests for the voucher workflow endpoints."""

from __future__ import annotations

import os
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_voucherflow.db")

import pytest
from fastapi.testclient import TestClient

from voucherflow.core.roles import Role
from voucherflow.core.security import get_current_actor, issue_token
from voucherflow.db import get_engine, session_scope
from voucherflow.main import app
from voucherflow.models import UserProfile
from voucherflow.models.base import Base
from voucherflow.schemas.actor import Actor
from voucherflow.services.attachments import InMemoryAttachmentStore
from voucherflow.services.tickets import TicketGenerator
from voucherflow.services.workflow import WorkflowEngine, get_workflow_engine

OTHER_PAYEE = Actor(actor_id=11, role=Role.PAYEE)

ACTORS = {
    Role.PAYEE: Actor(actor_id=1, role=Role.PAYEE),
    Role.FINANCE: Actor(actor_id=2, role=Role.FINANCE),
    Role.VOUCHER_CREATOR: Actor(actor_id=3, role=Role.VOUCHER_CREATOR),
    Role.CHECKER: Actor(actor_id=4, role=Role.CHECKER),
}


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def current() -> dict[str, Actor]:
    return {"actor": ACTORS[Role.PAYEE]}


@pytest.fixture()
def client(current: dict[str, Actor]) -> TestClient:  # type: ignore[no-untyped-def]
    engine = WorkflowEngine(
        attachment_store=InMemoryAttachmentStore(),
        ticket_generator=TicketGenerator("VOC"),
    )
    app.dependency_overrides[get_current_actor] = lambda: current["actor"]
    app.dependency_overrides[get_workflow_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.pop(get_current_actor, None)
    app.dependency_overrides.pop(get_workflow_engine, None)


def _submit(client: TestClient, **headers: str) -> dict:
    response = client.post(
        "/api/vouchers",
        data={
            "amount": "250.75",
            "bank_name": "First Bank",
            "account_title": "Acme Supplies",
            "account_number": "001-998877",
            "description": "Printer toner",
        },
        files={"receipt": ("receipt.jpg", b"\xff\xd8receipt", "image/jpeg")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_submit_and_approve_flow(client: TestClient, current: dict[str, Actor]) -> None:
    voucher = _submit(client)
    assert voucher["status"] == "pending"
    assert Decimal(voucher["amount"]) == Decimal("250.75")
    assert voucher["receipt_ref"].startswith("memory://receipts/")

    current["actor"] = ACTORS[Role.FINANCE]
    response = client.post(
        f"/api/vouchers/{voucher['id']}/approve", json={"expected_version": 1}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    current["actor"] = ACTORS[Role.VOUCHER_CREATOR]
    response = client.post(
        f"/api/vouchers/{voucher['id']}/voucher",
        data={"description": "Toner for the print room"},
        files={"voucher": ("voucher.pdf", b"%PDF-1.7", "application/pdf")},
    )
    assert response.status_code == 200, response.text
    created = response.json()
    assert created["status"] == "voucher_created"
    assert created["ticket_number"].startswith("VOC-000001-")
    assert created["voucher_ref"].startswith("memory://vouchers/")

    current["actor"] = ACTORS[Role.CHECKER]
    listing = client.get("/api/vouchers")
    assert [item["id"] for item in listing.json()] == [voucher["id"]]


def test_errors_map_to_status_codes(client: TestClient, current: dict[str, Actor]) -> None:
    voucher = _submit(client)

    response = client.post(f"/api/vouchers/{voucher['id']}/approve")
    assert response.status_code == 403

    current["actor"] = ACTORS[Role.FINANCE]
    response = client.post(f"/api/vouchers/{voucher['id']}/reject", json={"reason": ""})
    assert response.status_code == 422
    assert "Rejection reason" in response.json()["detail"]

    response = client.post(f"/api/vouchers/{voucher['id']}/check")
    assert response.status_code == 409

    response = client.post(
        f"/api/vouchers/{voucher['id']}/approve", json={"expected_version": 7}
    )
    assert response.status_code == 409

    response = client.get("/api/vouchers/999")
    assert response.status_code == 404


def test_comment_endpoint(client: TestClient, current: dict[str, Actor]) -> None:
    voucher = _submit(client)

    current["actor"] = ACTORS[Role.FINANCE]
    response = client.post(
        f"/api/vouchers/{voucher['id']}/comments", json={"text": "Need a clearer receipt"}
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "pending"
    assert payload["version"] == 2
    assert payload["history"][-1]["comment"] == "Need a clearer receipt"


def test_idempotency_header_replays_submission(client: TestClient) -> None:
    first = _submit(client, **{"Idempotency-Key": "abc-123"})
    second = _submit(client, **{"Idempotency-Key": "abc-123"})

    assert first["id"] == second["id"]
    assert len(client.get("/api/vouchers").json()) == 1


def test_missing_bearer_token_is_unauthorized() -> None:
    client = TestClient(app)

    response = client.get("/api/vouchers")

    assert response.status_code == 401


def test_bearer_token_resolves_actor() -> None:
    with session_scope() as session:
        user = UserProfile(
            email="finance@example.com",
            name="Finance",
            role=Role.FINANCE.value,
            pending_approval=False,
        )
        session.add(user)
        session.flush()
        token = issue_token(user.id)

    engine = WorkflowEngine(attachment_store=InMemoryAttachmentStore())
    app.dependency_overrides[get_workflow_engine] = lambda: engine
    try:
        client = TestClient(app)
        response = client.get(
            "/api/vouchers", headers={"Authorization": f"Bearer {token}"}
        )
    finally:
        app.dependency_overrides.pop(get_workflow_engine, None)

    assert response.status_code == 200
    assert response.json() == []


def test_health_endpoints(client: TestClient) -> None:
    assert client.get("/api/health/live").json() == {"status": "live"}
    assert client.get("/api/health/ready").json()["status"] == "ready"
    assert client.get("/api/metrics").status_code == 200


def test_read_by_id_respects_role_view(client: TestClient, current: dict[str, Actor]) -> None:
    voucher = _submit(client)
    assert client.get(f"/api/vouchers/{voucher['id']}").status_code == 200

    current["actor"] = OTHER_PAYEE
    response = client.get(f"/api/vouchers/{voucher['id']}")
    assert response.status_code == 404
    assert "account_number" not in response.json()

    current["actor"] = ACTORS[Role.CHECKER]
    assert client.get(f"/api/vouchers/{voucher['id']}").status_code == 404

    current["actor"] = ACTORS[Role.FINANCE]
    response = client.get(f"/api/vouchers/{voucher['id']}")
    assert response.status_code == 200
    assert response.json()["account_number"] == "001-998877"


def test_signup_creates_pending_profile() -> None:
    client = TestClient(app)

    response = client.post(
        "/api/auth/signup",
        json={"email": "New.Payee@example.com", "name": "New Payee", "contact": "555-0101"},
    )
    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["user"]["email"] == "new.payee@example.com"
    assert payload["user"]["role"] is None
    assert payload["user"]["pending_approval"] is True

    headers = {"Authorization": f"Bearer {payload['token']}"}
    assert client.get("/api/auth/me", headers=headers).status_code == 403

    duplicate = client.post(
        "/api/auth/signup", json={"email": "new.payee@example.com", "name": "Again"}
    )
    assert duplicate.status_code == 409
