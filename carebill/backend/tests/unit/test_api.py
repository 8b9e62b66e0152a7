"""HTTP flows through the FastAPI application."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from carebill.backend.src.main import app


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def test_health_endpoints(client: TestClient, billing_world) -> None:
    assert client.get("/api/health/live").json() == {"status": "live"}

    ready = client.get("/api/health/ready")
    assert ready.status_code == 200
    body = ready.json()
    assert body["status"] == "ready"
    assert isinstance(body["holiday_calendar_loaded"], bool)

    metrics = client.get("/api/metrics")
    assert metrics.status_code == 200
    assert "invoice_generation_seconds" in metrics.text


def test_reconcile_invoice_and_pay(client: TestClient, billing_world, make_visit) -> None:
    make_visit(datetime(2026, 3, 2, 9, 0))
    make_visit(datetime(2026, 3, 3, 9, 0))
    period = {
        "period_start": "2026-03-01",
        "period_end": "2026-03-31",
        "funder_id": billing_world.funder_id,
    }

    generated = client.post("/api/reconciliation/generate", json=period)
    assert generated.status_code == 200
    assert generated.json()["generated"] == 2

    listed = client.get("/api/reconciliation", params={"status": "PENDING"})
    assert listed.json()["total"] == 2
    visit_id = listed.json()["items"][0]["id"]

    approved = client.post("/api/reconciliation/bulk-approve", json=period)
    assert approved.json() == {"approved": 2}

    created = client.post(
        "/api/invoices/generate", json={**period, "invoice_date": "2026-04-01"}
    )
    assert created.status_code == 201
    invoice = created.json()
    assert invoice["invoice_number"] == "INV-202604-000001"
    assert invoice["status"] == "DRAFT"
    assert invoice["due_date"] == "2026-05-01"
    assert Decimal(invoice["total"]) == Decimal("37.00")
    assert len(invoice["lines"][0]["billable_visits"]) == 2

    disputed = client.post(
        f"/api/reconciliation/{visit_id}/dispute", json={"reason": "late"}
    )
    assert disputed.status_code == 409
    assert disputed.json()["current_status"] == "INVOICED"

    sent = client.post(
        f"/api/invoices/{invoice['id']}/send", json={"sent_date": "2026-04-01"}
    )
    assert sent.json()["status"] == "SENT"

    paid = client.post(
        f"/api/invoices/{invoice['id']}/mark-paid",
        json={"paid_date": "2026-04-20", "paid_amount": "22.20", "reference": "BACS"},
    )
    assert paid.status_code == 200
    assert paid.json()["status"] == "PARTIALLY_PAID"
    assert Decimal(paid.json()["outstanding"]) == Decimal("14.80")

    page = client.get(
        "/api/invoices", params={"status": "PARTIALLY_PAID", "as_of": "2026-04-21"}
    )
    assert [item["id"] for item in page.json()["items"]] == [invoice["id"]]

    overdue = client.get("/api/invoices/overdue", params={"as_of": "2026-05-02"})
    assert [item["derived_status"] for item in overdue.json()] == ["OVERDUE"]

    credit = client.post(
        "/api/credit-notes",
        json={
            "invoice_id": invoice["id"],
            "amount": "5.00",
            "reason": "short visit",
            "credit_date": "2026-04-22",
        },
    )
    assert credit.status_code == 201
    assert credit.json()["credit_note_number"] == "CN-INV-202604-000001"

    aged = client.get("/api/reports/aged-debt", params={"as_of": "2026-05-15"})
    assert Decimal(aged.json()["total_outstanding"]) == Decimal("14.80")


def test_empty_invoice_generation_is_unprocessable(client: TestClient, billing_world) -> None:
    response = client.post(
        "/api/invoices/generate",
        json={
            "funder_id": billing_world.funder_id,
            "period_start": "2026-03-01",
            "period_end": "2026-03-31",
        },
    )
    assert response.status_code == 422
    assert "No approved" in response.json()["detail"]


def test_unknown_resources_are_not_found(client: TestClient) -> None:
    assert client.get("/api/invoices/404").status_code == 404
    assert client.post("/api/reconciliation/404/approve").status_code == 404
    assert client.get("/api/rate-cards/404").status_code == 404


def test_rate_card_resolve_and_duplicate(client: TestClient, billing_world) -> None:
    params = {
        "funder_id": billing_world.funder_id,
        "visit_date": "2026-03-02",
        "start_time": "09:00:00",
    }
    resolved = client.get("/api/rate-cards/resolve", params=params)
    assert resolved.status_code == 200
    assert Decimal(resolved.json()["rate_per_hour"]) == Decimal("18.50")
    assert resolved.json()["day_type"] == "WEEKDAY"

    unmatched = client.get("/api/rate-cards/resolve", params={**params, "carers": 3})
    assert unmatched.status_code == 422

    copied = client.post(
        f"/api/rate-cards/{billing_world.rate_card_id}/duplicate",
        json={"name": "Northshire 2027", "effective_from": "2027-01-01"},
    )
    assert copied.status_code == 201
    assert len(copied.json()["lines"]) == 6
    assert Decimal(copied.json()["mileage_rate"]["rate_per_mile"]) == Decimal("0.45")

    cards = client.get("/api/rate-cards", params={"funder_id": billing_world.funder_id})
    assert len(cards.json()) == 2


def test_rate_card_rejects_half_open_band(client: TestClient) -> None:
    response = client.post(
        "/api/rate-cards",
        json={
            "name": "Broken",
            "effective_from": "2026-01-01",
            "lines": [
                {"day_type": "WEEKDAY", "time_band_start": "08:00", "rate_per_hour": "18.50"}
            ],
        },
    )
    assert response.status_code == 422


def test_bank_holiday_import_skips_existing_dates(client: TestClient) -> None:
    payload = {
        "holidays": [
            {"holiday_date": "2027-01-01", "name": "New Year's Day", "region": "scotland"},
            {"holiday_date": "2027-12-27", "name": "Christmas Day (substitute)", "region": "SCOTLAND"},
        ]
    }
    first = client.post("/api/bank-holidays/import", json=payload)
    assert first.json() == {"received": 2, "imported": 2}
    again = client.post("/api/bank-holidays/import", json=payload)
    assert again.json() == {"received": 2, "imported": 0}

    listed = client.get("/api/bank-holidays", params={"year": 2027, "region": "Scotland"})
    assert [row["holiday_date"] for row in listed.json()] == ["2027-01-01", "2027-12-27"]
