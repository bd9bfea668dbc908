"""Tests for the invoice text import parser and the import audit log."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from homebase.database import init_db
from homebase.importer import (
    MIN_FIELDS_MESSAGE,
    parse_date_to_iso,
    parse_invoice_line,
    parse_invoice_text,
)
from homebase.users import create_user

_FULL_LINE = "Client A, 2024-07-01, 1500.00, Web Design, Net 30, REF123, Marketing"


@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("homebase.config.DB_PATH", db_file)
    init_db(db_file)
    return db_file


@pytest.fixture()
def client(tmp_db, monkeypatch):
    create_user("owner@example.com", "pw", plugins=["import"])
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


class TestParseDate:
    def test_iso_date(self):
        assert parse_date_to_iso("2024-07-01") == "2024-07-01T00:00:00.000Z"

    def test_other_formats(self):
        assert parse_date_to_iso("01.07.2024") == "2024-07-01T00:00:00.000Z"
        assert parse_date_to_iso("2024/07/01") == "2024-07-01T00:00:00.000Z"

    def test_invalid(self):
        assert parse_date_to_iso("first of july") is None


class TestParseLine:
    def test_full_line(self):
        row = parse_invoice_line(_FULL_LINE)
        assert row.is_valid
        assert row.to_dict() == {
            "customerName": "Client A",
            "invoiceDate": "2024-07-01T00:00:00.000Z",
            "amountDue": "1500.00",
            "serviceDescription": "Web Design",
            "paymentTerms": "Net 30",
            "referenceNumber": "REF123",
            "category": "Marketing",
            "isValid": True,
            "errors": [],
        }

    def test_minimum_fields(self):
        row = parse_invoice_line("Client B, 2024-07-02, 99")
        assert row.is_valid
        assert row.category == ""

    def test_two_fields_invalid(self):
        row = parse_invoice_line("Client A, 2024-07-01")
        assert not row.is_valid
        assert MIN_FIELDS_MESSAGE in row.errors
        assert MIN_FIELDS_MESSAGE == (
            "Minimum 3 fields required: Customer Name, Invoice Date, Amount Due"
        )

    def test_bad_date_and_amount(self):
        row = parse_invoice_line("Client A, someday, -4")
        assert row.errors == ["Invalid date format", "Amount due must be a non-negative number"]

    def test_blank_customer(self):
        row = parse_invoice_line(" , 2024-07-01, 10")
        assert row.errors == ["Customer name is required"]

    def test_to_invoice_drops_report_fields(self):
        payload = parse_invoice_line(_FULL_LINE).to_invoice()
        assert "isValid" not in payload
        assert payload["referenceNumber"] == "REF123"


class TestParseText:
    def test_skips_blank_lines_and_keeps_line_numbers(self):
        rows = parse_invoice_text(f"{_FULL_LINE}\n\n   \nBroken line\n")
        assert [r.line_number for r in rows] == [1, 4]
        assert [r.is_valid for r in rows] == [True, False]


class TestImportLogApi:
    def test_record_and_list(self, client):
        resp = client.post("/api/import/logs", json={
            "importType": "invoices", "totalRows": 3, "createdCount": 2,
            "errors": [{"line": 3, "errors": ["Invalid date format"]}],
        })
        assert resp.status_code == 200
        assert resp.json()["errorCount"] == 1
        logs = client.get("/api/import/logs").json()
        assert logs[0]["errors"] == [{"line": 3, "errors": ["Invalid date format"]}]
