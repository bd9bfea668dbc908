"""Tests for estimates and invoices: numbering, totals, due dates, API."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from homebase.database import get_connection, init_db
from homebase.estimates import calculate_totals, create_estimate, next_estimate_number
from homebase.invoices import create_invoice, due_date_from_terms
from homebase.users import create_user

_YEAR = datetime.now(timezone.utc).year


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("homebase.config.DB_PATH", db_file)
    init_db(db_file)
    return db_file


@pytest.fixture()
def user(tmp_db):
    return create_user("owner@example.com", "pw", plugins=["estimates", "invoices"])


@pytest.fixture()
def client(user, monkeypatch):
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


def _estimate(**overrides):
    data = {
        "contactId": "c1",
        "contactName": "Acme AB",
        "validTo": "2030-01-31",
        "lineItems": [
            {"description": "Design", "quantity": 3, "unitPrice": 100.0, "vatRate": 25},
            {"description": "Hosting", "quantity": 1, "unitPrice": 49.99, "vatRate": 0},
        ],
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------

class TestTotals:
    def test_totals(self):
        assert calculate_totals(_estimate()["lineItems"]) == {
            "subtotal": 349.99, "totalVat": 75.0, "total": 424.99,
        }

    def test_empty(self):
        assert calculate_totals([]) == {"subtotal": 0, "totalVat": 0, "total": 0}

    def test_rounding(self):
        items = [{"quantity": 3, "unitPrice": 0.1, "vatRate": 12}]
        assert calculate_totals(items) == {"subtotal": 0.3, "totalVat": 0.04, "total": 0.34}


class TestEstimateNumbering:
    def test_first_and_next(self, user):
        assert next_estimate_number(user["id"]) == f"{_YEAR}-001"
        first = create_estimate(user["id"], _estimate())
        second = create_estimate(user["id"], _estimate())
        assert first["estimateNumber"] == f"{_YEAR}-001"
        assert second["estimateNumber"] == f"{_YEAR}-002"

    def test_other_year_starts_over(self, user):
        create_estimate(user["id"], _estimate())
        assert next_estimate_number(user["id"], year=_YEAR + 1) == f"{_YEAR + 1}-001"

    def test_past_three_digits(self, user):
        created = [create_estimate(user["id"], _estimate()) for _ in range(3)]
        with get_connection() as conn:
            for estimate, seq in zip(created, (998, 999, 1000)):
                conn.execute(
                    "UPDATE estimates SET estimate_number = ? WHERE id = ?",
                    (f"{_YEAR}-{seq}", estimate["id"]),
                )
        assert next_estimate_number(user["id"]) == f"{_YEAR}-1001"
        assert create_estimate(user["id"], _estimate())["estimateNumber"] == f"{_YEAR}-1001"


class TestEstimatesApi:
    def test_create_computes_totals(self, client):
        resp = client.post("/api/estimates", json=_estimate())
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 424.99
        assert body["status"] == "draft"
        assert body["lineItems"][0]["description"] == "Design"

    def test_next_number(self, client):
        client.post("/api/estimates", json=_estimate())
        assert client.get("/api/estimates/next-number").json() == {"estimateNumber": f"{_YEAR}-002"}

    def test_validation(self, client):
        resp = client.post("/api/estimates", json=_estimate(lineItems=[]))
        assert resp.status_code == 400
        assert resp.json()["errors"] == [
            {"field": "lineItems", "message": "At least one line item is required"},
        ]

    def test_update_keeps_number(self, client):
        created = client.post("/api/estimates", json=_estimate()).json()
        updated = client.put(f"/api/estimates/{created['id']}", json=_estimate(status="sent")).json()
        assert updated["estimateNumber"] == created["estimateNumber"]
        assert updated["status"] == "sent"


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------

class TestInvoices:
    def test_due_date_from_terms(self):
        assert due_date_from_terms("2024-07-01", "Net 30") == "2024-07-31"
        assert due_date_from_terms("2024-07-01T00:00:00.000Z", "net 10") == "2024-07-11"
        assert due_date_from_terms("2024-07-01", "On receipt") is None

    def test_numbering_and_due_date(self, user):
        invoice = create_invoice(user["id"], {
            "customerName": "Client A", "invoiceDate": "2024-07-01",
            "amountDue": "1500.00", "paymentTerms": "Net 30",
        })
        assert invoice["invoiceNumber"] == f"{_YEAR}-001"
        assert invoice["dueDate"] == "2024-07-31"
        assert invoice["amountDue"] == 1500.0

    def test_explicit_due_date_wins(self, user):
        invoice = create_invoice(user["id"], {
            "customerName": "Client A", "invoiceDate": "2024-07-01",
            "amountDue": 1, "paymentTerms": "Net 30", "dueDate": "2024-08-15",
        })
        assert invoice["dueDate"] == "2024-08-15"


class TestInvoicesApi:
    def test_create_and_delete(self, client):
        created = client.post("/api/invoices", json={
            "customerName": "Client A", "invoiceDate": "2024-07-01", "amountDue": 10,
        }).json()
        resp = client.delete(f"/api/invoices/{created['id']}")
        assert resp.json()["message"] == "Invoice deleted successfully"

    def test_negative_amount_rejected(self, client):
        resp = client.post("/api/invoices", json={
            "customerName": "Client A", "invoiceDate": "2024-07-01", "amountDue": -5,
        })
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "amountDue"

    def test_missing_invoice(self, client):
        resp = client.delete("/api/invoices/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Invoice not found"}
