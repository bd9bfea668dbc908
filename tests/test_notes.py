"""Tests for notes, mention spans, tasks and the note-to-task cascade."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from homebase.database import init_db
from homebase.notes import create_note, delete_note, mentions_contact, normalize_mentions
from homebase.tasks import create_task, list_tasks
from homebase.users import create_user


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
    return create_user("owner@example.com", "pw", plugins=["notes", "tasks"])


@pytest.fixture()
def client(user, monkeypatch):
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


def _mention(contact_id, position, length, name="Acme AB"):
    return {"contactId": contact_id, "contactName": name, "companyName": name,
            "position": position, "length": length}


# ---------------------------------------------------------------------------
# Mentions
# ---------------------------------------------------------------------------

class TestMentions:
    def test_sorted_by_position(self):
        content = "Call @Acme and @Beta"
        result = normalize_mentions(content, [_mention("b", 15, 5), _mention("a", 5, 5)])
        assert [m["contactId"] for m in result] == ["a", "b"]

    def test_out_of_range_dropped(self):
        result = normalize_mentions("short", [_mention("a", 3, 10), _mention("b", -1, 2)])
        assert result == []

    def test_missing_contact_dropped(self):
        assert normalize_mentions("hello", [{"position": 0, "length": 2}]) == []

    def test_mentions_contact(self):
        assert mentions_contact({"mentions": [_mention("a", 0, 1)]}, "a")
        assert not mentions_contact({"mentions": []}, "a")


# ---------------------------------------------------------------------------
# Notes model
# ---------------------------------------------------------------------------

class TestNotes:
    def test_create_stores_clean_mentions(self, user):
        note = create_note(user["id"], {
            "title": "Call", "content": "Call @Acme", "mentions": [_mention("c1", 5, 5), "junk"],
        })
        assert note["mentions"] == [_mention("c1", 5, 5)]

    def test_delete_cascades_tasks_from_note(self, user):
        note = create_note(user["id"], {"title": "Plan", "content": "Do things"})
        create_task(user["id"], {"title": "From note", "content": "x", "createdFromNote": note["id"]})
        create_task(user["id"], {"title": "Standalone", "content": "y"})
        assert delete_note(user["id"], note["id"])
        assert [t["title"] for t in list_tasks(user["id"])] == ["Standalone"]

    def test_delete_missing(self, user):
        assert not delete_note(user["id"], "nope")


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class TestNotesApi:
    def test_crud(self, client):
        created = client.post("/api/notes", json={"title": "Hi", "content": "Body"}).json()
        assert created["title"] == "Hi"
        updated = client.put(f"/api/notes/{created['id']}", json={"title": "Hi!", "content": "Body"})
        assert updated.json()["title"] == "Hi!"
        resp = client.delete(f"/api/notes/{created['id']}")
        assert resp.json()["message"] == "Note deleted successfully"

    def test_blank_title_rejected(self, client):
        resp = client.post("/api/notes", json={"title": "  ", "content": "Body"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["message"] == "Note title is required"

    def test_missing_note(self, client):
        assert client.get("/api/notes/nope").json() == {"error": "Note not found"}


class TestTasksApi:
    def test_defaults(self, client):
        resp = client.post("/api/tasks", json={"title": "Call", "content": "Call back"})
        assert resp.status_code == 200
        task = resp.json()
        assert task["status"] == "not started"
        assert task["priority"] == "Medium"

    def test_invalid_status(self, client):
        resp = client.post("/api/tasks", json={"title": "t", "content": "c", "status": "later"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "status"

    def test_forbidden_without_grant(self, client):
        assert client.get("/api/contacts").status_code == 403
