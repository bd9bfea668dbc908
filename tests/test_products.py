"""Tests for products: normalization, uniqueness and /api/products."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from homebase.channels import list_product_maps, set_product_enabled
from homebase.database import init_db
from homebase.products import create_product, delete_product, normalize_product
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
    return create_user("owner@example.com", "pw", plugins=["products", "channels"])


@pytest.fixture()
def client(user, monkeypatch):
    monkeypatch.setattr("homebase.config.AUTH_ENABLED", False)
    from homebase.web.app import create_app
    return TestClient(create_app(), raise_server_exceptions=False)


def _product(**overrides):
    data = {"title": "Mug", "quantity": 5, "priceAmount": 149, "currency": "sek"}
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_defaults(self):
        normalized = normalize_product({"title": " Mug ", "sku": "  ", "currency": "eur"})
        assert normalized["title"] == "Mug"
        assert normalized["sku"] is None
        assert normalized["currency"] == "EUR"
        assert normalized["vatRate"] == 25
        assert normalized["status"] == "for sale"

    def test_whole_float_quantity(self):
        assert normalize_product({"quantity": 3.0})["quantity"] == 3


class TestProductModel:
    def test_blank_skus_do_not_collide(self, user):
        create_product(user["id"], normalize_product(_product(sku="")))
        create_product(user["id"], normalize_product(_product(sku="")))

    def test_duplicate_sku(self, user):
        create_product(user["id"], normalize_product(_product(sku="MUG-1")))
        with pytest.raises(UniqueViolation) as excinfo:
            create_product(user["id"], normalize_product(_product(sku="MUG-1")))
        assert excinfo.value.errors[0].message == 'SKU "MUG-1" already exists'

    def test_delete_removes_channel_maps(self, user):
        product = create_product(user["id"], normalize_product(_product()))
        set_product_enabled(user["id"], product["id"], "woocommerce", True)
        assert delete_product(user["id"], product["id"])
        assert list_product_maps(user["id"]) == []


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class TestProductsApi:
    def test_create(self, client):
        resp = client.post("/api/products", json=_product(images=["https://x/a.png"]))
        assert resp.status_code == 200
        body = resp.json()
        assert body["currency"] == "SEK"
        assert body["images"] == ["https://x/a.png"]

    def test_validation_errors(self, client):
        resp = client.post("/api/products", json=_product(title="", quantity=-1))
        assert resp.status_code == 400
        fields = [e["field"] for e in resp.json()["errors"]]
        assert fields == ["title", "quantity"]

    def test_duplicate_product_number_conflict(self, client):
        client.post("/api/products", json=_product(productNumber="P-1"))
        resp = client.post("/api/products", json=_product(productNumber="P-1"))
        assert resp.status_code == 409
        assert resp.json()["errors"] == [
            {"field": "productNumber", "message": 'Product number "P-1" already exists'},
        ]

    def test_advisory_gtin_does_not_block(self, client):
        resp = client.post("/api/products", json=_product(gtin="12"))
        assert resp.status_code == 200

    def test_update_and_delete(self, client):
        created = client.post("/api/products", json=_product()).json()
        updated = client.put(f"/api/products/{created['id']}", json=_product(title="Big mug"))
        assert updated.json()["title"] == "Big mug"
        resp = client.delete(f"/api/products/{created['id']}")
        assert resp.json()["message"] == "Product deleted successfully"
