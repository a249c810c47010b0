from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from quote_engine.auth.jwt import create_access_token
from quote_engine.core.config import get_config
from quote_engine.database import db as database
from quote_engine.main import create_app

USER_ID = 10
OTHER_USER_ID = 11
ADMIN_ID = 1


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("PENALTY_SCHEDULER_MODE", "off")
    monkeypatch.setenv("LOG_FILE", "")
    monkeypatch.setenv("ENV", "test")
    get_config.cache_clear()
    database.reset_engine(get_config().DATABASE_URL)
    with TestClient(create_app()) as test_client:
        yield test_client
    database.get_engine().dispose()
    get_config.cache_clear()


def _headers(user_id: int, role: str) -> dict:
    token = create_access_token(user_id=user_id, role=role, secret=get_config().JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


def _user(user_id: int = USER_ID) -> dict:
    return _headers(user_id, "user")


def _contractor(contractor_id: int) -> dict:
    return _headers(contractor_id, "contractor")


def _admin() -> dict:
    return _headers(ADMIN_ID, "admin")


def _create_request(client, contractor_ids=(101, 102)) -> dict:
    response = client.post(
        "/api/v1/quote-requests",
        headers=_user(),
        json={
            "property_details": {"property_type": "detached_house", "roof_type": "pitched"},
            "electricity_consumption": {"average_monthly_kwh": "850"},
            "system_size_kwp": "12",
            "location": {"address": "12 Solar Way"},
            "penalty_acknowledged": True,
            "contractor_ids": list(contractor_ids),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def _accept_assignment(client, contractor_id: int, request_id: int) -> None:
    listing = client.get("/api/v1/contractor/assignments", headers=_contractor(contractor_id))
    assert listing.status_code == 200, listing.text
    assignment = next(item for item in listing.json()["items"] if item["request_id"] == request_id)
    response = client.post(
        f"/api/v1/contractor-responses/{assignment['id']}",
        headers=_contractor(contractor_id),
        json={"response": "accepted"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "accepted"


def _submit_and_approve(client, contractor_id: int, request_id: int, unit_price: str) -> dict:
    submitted = client.post(
        "/api/v1/quotations",
        headers=_contractor(contractor_id),
        json={
            "request_id": request_id,
            "installation_timeline_days": 30,
            "system_specs": {"capacity_kwp": "12"},
            "warranty_terms": "25 year panel warranty",
            "maintenance_terms": "Annual inspection",
            "line_items": [{"name": "Turnkey PV system", "units": 1, "unit_price": unit_price}],
        },
    )
    assert submitted.status_code == 201, submitted.text
    reviewed = client.post(
        f"/api/v1/quotations/{submitted.json()['id']}/review",
        headers=_admin(),
        json={"decision": "approved"},
    )
    assert reviewed.status_code == 200, reviewed.text
    return reviewed.json()


def test_health_and_root(client):
    assert client.get("/").json()["api_prefix"] == "/api/v1"
    health = client.get("/api/v1/health").json()
    assert health["status"] == "ok"
    assert health["database"] == "ok"


def test_missing_or_wrong_role_token_is_rejected(client):
    assert client.get("/api/v1/quote-requests").status_code == 401
    bad = client.get("/api/v1/quote-requests", headers={"Authorization": "Bearer not.a.token"})
    assert bad.status_code == 401
    forbidden = client.get("/api/v1/admin/pricing-config", headers=_contractor(101))
    assert forbidden.status_code == 403


def test_full_quote_flow_over_http(client):
    request = _create_request(client)
    assert request["status"] == "contractors_selected"
    assert request["contractor_ids"] == [101, 102]

    for contractor_id in (101, 102):
        _accept_assignment(client, contractor_id, request["id"])
    chosen = _submit_and_approve(client, 101, request["id"], "22700")
    _submit_and_approve(client, 102, request["id"], "23500")

    assert Decimal(chosen["commission_amount"]) == Decimal("3405.00")
    assert Decimal(chosen["overprice_amount"]) == Decimal("2270.00")
    assert Decimal(chosen["total_user_price"]) == Decimal("24970.00")
    assert Decimal(chosen["contractor_net_amount"]) == Decimal("19295.00")

    listing = client.get(f"/api/v1/quote-requests/{request['id']}/quotations", headers=_user())
    assert listing.status_code == 200
    assert {item["admin_status"] for item in listing.json()["items"]} == {"approved"}

    selected = client.post(f"/api/v1/quotations/{chosen['id']}/select", headers=_user())
    assert selected.status_code == 200, selected.text
    invoice = selected.json()["invoice"]
    assert invoice["status"] == "pending"
    assert Decimal(invoice["net_amount"]) == Decimal("19295.00")
    assert Decimal(invoice["vat_amount"]) == Decimal("2894.25")
    assert Decimal(invoice["total_with_vat"]) == Decimal("22189.25")
    assert selected.json()["installation_deadline"] is not None

    again = client.post(f"/api/v1/quotations/{chosen['id']}/select", headers=_user())
    assert again.status_code == 409
    assert again.json()["error_code"] == "conflict"

    state = client.get(f"/api/v1/quote-requests/{request['id']}", headers=_user()).json()
    assert state["status"] == "quote_selected"
    assert state["selected_quotation_id"] == chosen["id"]

    pdf = client.get(f"/api/v1/invoices/{invoice['id']}/pdf", headers=_contractor(101))
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    paid = client.post(
        f"/api/v1/invoices/{invoice['id']}/mark-paid",
        headers=_admin(),
        json={"payment_reference": "BANK-7781"},
    )
    assert paid.status_code == 200, paid.text
    assert paid.json()["status"] == "paid"

    wallet = client.get("/api/v1/wallets/me", headers=_contractor(101)).json()
    assert Decimal(wallet["balance"]) == Decimal("19295.00")
    assert Decimal(wallet["total_commission_paid"]) == Decimal("3405.00")
    integrity = client.get("/api/v1/wallets/101/integrity", headers=_admin()).json()
    assert integrity["consistent"] is True
    assert integrity["transaction_count"] == 2

    completed = client.post(f"/api/v1/quote-requests/{request['id']}/complete", headers=_user(), json={})
    assert completed.status_code == 200, completed.text
    assert completed.json()["status"] == "completed"


def test_other_users_cannot_see_or_select(client):
    request = _create_request(client, contractor_ids=(101,))
    _accept_assignment(client, 101, request["id"])
    quotation = _submit_and_approve(client, 101, request["id"], "22700")

    assert client.get(f"/api/v1/quote-requests/{request['id']}", headers=_user(OTHER_USER_ID)).status_code == 404
    stolen = client.post(f"/api/v1/quotations/{quotation['id']}/select", headers=_user(OTHER_USER_ID))
    assert stolen.status_code == 404
    assert client.get(f"/api/v1/wallets/{101}", headers=_contractor(102)).status_code == 404


def test_price_cap_and_validation_errors(client):
    request = _create_request(client, contractor_ids=(101,))
    _accept_assignment(client, 101, request["id"])
    over_cap = client.post(
        "/api/v1/quotations",
        headers=_contractor(101),
        json={
            "request_id": request["id"],
            "installation_timeline_days": 30,
            "system_specs": {},
            "warranty_terms": "25 years",
            "maintenance_terms": "Annual",
            "line_items": [{"name": "System", "units": 1, "unit_price": "30000"}],
        },
    )
    assert over_cap.status_code == 400
    assert over_cap.json()["error_code"] == "validation_error"

    malformed = client.post("/api/v1/quotations", headers=_contractor(101), json={"request_id": request["id"]})
    assert malformed.status_code == 422


def test_penalty_dispute_over_http(client):
    request = _create_request(client, contractor_ids=(101,))
    _accept_assignment(client, 101, request["id"])
    quotation = _submit_and_approve(client, 101, request["id"], "22700")
    client.post(f"/api/v1/quotations/{quotation['id']}/select", headers=_user())

    applied = client.post(
        "/api/v1/penalties",
        headers=_admin(),
        json={
            "contractor_id": 101,
            "quote_id": quotation["id"],
            "penalty_type": "communication_failure",
            "description": "No reply to the customer for a week",
        },
    )
    assert applied.status_code == 200, applied.text
    assert applied.json()["created"] is True
    penalty = applied.json()["penalty"]
    assert Decimal(penalty["amount"]) == Decimal("250.00")

    repeat = client.post(
        "/api/v1/penalties",
        headers=_admin(),
        json={
            "contractor_id": 101,
            "quote_id": quotation["id"],
            "penalty_type": "communication_failure",
            "description": "No reply to the customer for a week",
        },
    )
    assert repeat.json()["created"] is False
    assert repeat.json()["penalty"]["id"] == penalty["id"]

    disputed = client.post(
        f"/api/v1/penalties/{penalty['id']}/dispute",
        headers=_contractor(101),
        json={"dispute_reason": "Customer phone number on file was wrong."},
    )
    assert disputed.status_code == 200, disputed.text
    assert disputed.json()["status"] == "disputed"

    waived = client.post(
        f"/api/v1/penalties/{penalty['id']}/resolve",
        headers=_admin(),
        json={"resolution": "waive", "resolution_notes": "Contact details were outdated."},
    )
    assert waived.status_code == 200, waived.text
    assert waived.json()["status"] == "waived"

    wallet = client.get("/api/v1/wallets/me", headers=_contractor(101)).json()
    assert Decimal(wallet["balance"]) == Decimal("0.00")


def test_admin_pricing_and_penalty_check_endpoints(client):
    pricing = client.get("/api/v1/admin/pricing-config", headers=_admin())
    assert pricing.status_code == 200
    assert Decimal(pricing.json()["active"]["commission_percent"]) == Decimal("15.00")

    updated = client.put("/api/v1/admin/pricing-config", headers=_admin(), json={"commission_percent": "12"})
    assert updated.status_code == 200, updated.text
    assert Decimal(updated.json()["commission_percent"]) == Decimal("12.00")
    assert updated.json()["version"] == 2

    rules = client.get("/api/v1/penalty-rules", headers=_contractor(101)).json()["items"]
    assert {rule["code"] for rule in rules} >= {"late_installation_daily", "quality_issue"}

    run = client.post("/api/v1/admin/penalty-check/run", headers=_admin())
    assert run.status_code == 200
    assert run.json()["violations_detected"] == 0
    status = client.get("/api/v1/admin/penalty-check/status", headers=_admin()).json()
    assert status["last_run"] is not None


def test_admin_oversight_and_selection_reversal(client):
    request = _create_request(client)
    listing = client.get("/api/v1/contractor/assignments", headers=_contractor(101)).json()["items"]
    viewed = client.post(f"/api/v1/assignments/{listing[0]['id']}/view", headers=_contractor(101))
    assert viewed.status_code == 200, viewed.text
    assert viewed.json()["status"] == "viewed"
    assert viewed.json()["viewed_at"] is not None

    for contractor_id in (101, 102):
        _accept_assignment(client, contractor_id, request["id"])
    first = _submit_and_approve(client, 101, request["id"], "22700")
    second = _submit_and_approve(client, 102, request["id"], "21000")

    approved = client.get("/api/v1/admin/quotations", headers=_admin(), params={"status": "approved"}).json()
    assert approved["total"] == 2

    client.post(f"/api/v1/quotations/{first['id']}/select", headers=_user())
    assert client.get(f"/api/v1/quotations/{second['id']}", headers=_admin()).json()["admin_status"] == "rejected"

    reversed_ = client.post(
        f"/api/v1/admin/quotations/{first['id']}/reverse-selection",
        headers=_admin(),
        json={"reason": "Customer asked to compare offers again"},
    )
    assert reversed_.status_code == 200, reversed_.text
    assert reversed_.json()["is_selected"] is False
    assert client.get(f"/api/v1/quotations/{second['id']}", headers=_admin()).json()["admin_status"] == "approved"
    state = client.get(f"/api/v1/quote-requests/{request['id']}", headers=_user()).json()
    assert state["status"] == "quotes_received"
    assert state["installation_deadline"] is None

    reselected = client.post(f"/api/v1/quotations/{second['id']}/select", headers=_user())
    assert reselected.status_code == 200, reselected.text

    report = client.post(
        "/api/v1/violations",
        headers=_user(),
        json={
            "request_id": request["id"],
            "violation_type": "documentation_issue",
            "description": "Grid connection certificate was never delivered.",
        },
    )
    assert report.status_code == 201, report.text
    violations = client.get("/api/v1/violations", headers=_admin()).json()["items"]
    assert [item["id"] for item in violations] == [report.json()["id"]]
    assert violations[0]["contractor_id"] == 102
