"""Tests for file storage, upload limits and /api/files."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from homebase.database import init_db
from homebase.files import RAW_URL_PREFIX, safe_stored_name
from homebase.users import create_user


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def tmp_db(tmp_path, monkeypatch):
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("homebase.config.DB_PATH", db_file)
    monkeypatch.setattr("homebase.config.UPLOAD_DIR", tmp_path / "uploads")
    init_db(db_file)
    return db_file


@pytest.fixture()
def client(tmp_db, monkeypatch):
    create_user("owner@example.com", "pw", plugins=["files"])
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


def _upload(client, *files):
    return client.post("/api/files/upload", files=[("files", f) for f in files])


# ---------------------------------------------------------------------------
# Stored names
# ---------------------------------------------------------------------------

class TestStoredName:
    def test_shape(self):
        name = safe_stored_name("Offert åäö 2024.pdf")
        millis, token, rest = name.split("-", 2)
        assert millis.isdigit()
        assert len(token) == 8
        assert rest == "Offert_aao_2024.pdf"

    def test_no_path_components(self):
        name = safe_stored_name("../../etc/passwd")
        assert "/" not in name
        assert name.endswith("-passwd")


# ---------------------------------------------------------------------------
# Upload and raw serving
# ---------------------------------------------------------------------------

class TestUpload:
    def test_upload_and_download(self, client, tmp_path):
        resp = _upload(client, ("notes.txt", b"hello", "text/plain"))
        assert resp.status_code == 200
        record = resp.json()[0]
        assert record["name"] == "notes.txt"
        assert record["size"] == 5
        assert record["url"].startswith(RAW_URL_PREFIX)
        assert len(list((tmp_path / "uploads").iterdir())) == 1

        raw = client.get(record["url"])
        assert raw.status_code == 200
        assert raw.content == b"hello"
        assert 'filename="notes.txt"' in raw.headers["content-disposition"]

    def test_blocked_type(self, client):
        resp = _upload(client, ("run.exe", b"MZ", "application/x-msdownload"))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Blocked file types: run.exe (application/x-msdownload)"}

    def test_too_many_files(self, client, monkeypatch):
        monkeypatch.setattr("homebase.config.MAX_UPLOAD_FILES", 1)
        resp = _upload(client, ("a.txt", b"a", "text/plain"), ("b.txt", b"b", "text/plain"))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Too many files (max 1)"}

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setattr("homebase.config.MAX_UPLOAD_MB", 0)
        resp = _upload(client, ("a.txt", b"a", "text/plain"))
        assert resp.status_code == 400
        assert resp.json() == {"error": "File too large (max 0MB)"}

    def test_unknown_raw_file(self, client):
        assert client.get("/api/files/raw/nothing.txt").status_code == 404


# ---------------------------------------------------------------------------
# Metadata CRUD
# ---------------------------------------------------------------------------

class TestFilesApi:
    def test_rename(self, client):
        record = _upload(client, ("a.txt", b"a", "text/plain")).json()[0]
        resp = client.put(f"/api/files/{record['id']}", json={"name": "renamed.txt"})
        assert resp.json()["name"] == "renamed.txt"
        assert resp.json()["size"] == 1

    def test_blank_name_rejected(self, client):
        resp = client.post("/api/files", json={"name": " "})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["message"] == "Filename is required"

    def test_delete_removes_bytes(self, client, tmp_path):
        record = _upload(client, ("a.txt", b"a", "text/plain")).json()[0]
        resp = client.delete(f"/api/files/{record['id']}")
        assert resp.json()["message"] == "File deleted successfully"
        assert list((tmp_path / "uploads").iterdir()) == []
        assert client.get("/api/files").json() == []

    def test_metadata_record_cannot_claim_upload(self, client):
        upload = _upload(client, ("a.pdf", b"%PDF", "application/pdf")).json()[0]
        alias = client.post("/api/files", json={"name": "alias", "url": upload["url"]}).json()
        assert alias["url"] is None

        client.delete(f"/api/files/{alias['id']}")

        assert client.get(upload["url"]).status_code == 200
        assert [f["id"] for f in client.get("/api/files").json()] == [upload["id"]]

    def test_external_url_kept(self, client):
        resp = client.post("/api/files", json={"name": "brochure", "url": "https://example.com/a.pdf"})
        assert resp.json()["url"] == "https://example.com/a.pdf"
