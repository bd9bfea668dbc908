"""Tests for the contacts model and /api/contacts."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from homebase.contacts import create_contact, list_contacts, next_contact_number
from homebase.database import init_db
from homebase.users import create_user
from homebase.validation import UniqueViolation


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
    return create_user("owner@example.com", "pw", role="superuser")


@pytest.fixture()
def client(user, monkeypatch):
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class TestContactModel:
    def test_auto_number(self, user):
        first = create_contact(user["id"], {"companyName": "Acme AB"})
        second = create_contact(user["id"], {"companyName": "Beta AB"})
        assert first["contactNumber"] == "01"
        assert second["contactNumber"] == "02"
        assert next_contact_number(user["id"]) == "03"

    def test_record_shape(self, user):
        contact = create_contact(user["id"], {
            "companyName": "Acme AB",
            "contactPersons": [{"name": "Anna"}],
            "fTax": True,
        })
        assert contact["contactType"] == "company"
        assert contact["contactPersons"] == [{"name": "Anna"}]
        assert contact["fTax"] is True
        assert "userId" not in contact

    def test_duplicate_number_raises(self, user):
        create_contact(user["id"], {"contactNumber": "07", "companyName": "Acme AB"})
        with pytest.raises(UniqueViolation) as excinfo:
            create_contact(user["id"], {"contactNumber": "07", "companyName": "Other"})
        assert excinfo.value.errors[0].field == "contactNumber"

    def test_numbers_are_per_user(self, user):
        other = create_user("other@example.com", "pw")
        create_contact(user["id"], {"contactNumber": "01", "companyName": "Mine"})
        create_contact(other["id"], {"contactNumber": "01", "companyName": "Theirs"})
        assert [c["companyName"] for c in list_contacts(other["id"])] == ["Theirs"]


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class TestContactsApi:
    def test_create_and_list(self, client):
        resp = client.post("/api/contacts", json={"companyName": "Acme AB"})
        assert resp.status_code == 200
        assert resp.json()["contactNumber"] == "01"
        assert [c["companyName"] for c in client.get("/api/contacts").json()] == ["Acme AB"]

    def test_next_number(self, client):
        client.post("/api/contacts", json={"companyName": "Acme AB"})
        assert client.get("/api/contacts/next-number").json() == {"contactNumber": "02"}

    def test_missing_name_rejected(self, client):
        resp = client.post("/api/contacts", json={"contactNumber": "01"})
        assert resp.status_code == 400
        assert resp.json()["errors"] == [
            {"field": "companyName", "message": "Company name is required"},
        ]

    def test_duplicate_number_conflict(self, client):
        client.post("/api/contacts", json={"contactNumber": "05", "companyName": "Acme AB"})
        resp = client.post("/api/contacts", json={"contactNumber": "05", "companyName": "Other"})
        assert resp.status_code == 409
        assert resp.json()["errors"][0]["field"] == "contactNumber"

    def test_update(self, client):
        created = client.post("/api/contacts", json={"companyName": "Acme AB"}).json()
        resp = client.put(f"/api/contacts/{created['id']}", json={
            "contactNumber": created["contactNumber"], "companyName": "Acme Group AB",
        })
        assert resp.status_code == 200
        assert resp.json()["companyName"] == "Acme Group AB"

    def test_update_missing(self, client):
        resp = client.put("/api/contacts/nope", json={"contactNumber": "01", "companyName": "X"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Contact not found"}

    def test_delete(self, client):
        created = client.post("/api/contacts", json={"companyName": "Acme AB"}).json()
        resp = client.delete(f"/api/contacts/{created['id']}")
        assert resp.json() == {"message": "Contact deleted successfully", "id": created["id"]}
        assert client.get(f"/api/contacts/{created['id']}").status_code == 404

    def test_invalid_json(self, client):
        resp = client.post(
            "/api/contacts", content=b"not json", headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON body"}
