"""Tests for item endpoints: CRUD, filtered listing, tags, import/export."""

import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient
from server.app import app
from server.config import Settings
from server.db.session import init_db, reset_engine
from server.dependencies import get_settings
from vault.models import Item


# ============================================================================
# Helpers
# ============================================================================

@contextmanager
def _client():
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = Settings(database_url=f"sqlite:///{Path(tmp) / 'test.db'}")
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        try:
            yield TestClient(app)
        finally:
            app.dependency_overrides.clear()
            reset_engine()


def _create(client, **fields):
    body = {"name": "Sample"}
    body.update(fields)
    resp = client.post("/items", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ============================================================================
# Tests: CRUD
# ============================================================================

def test_create_item_fills_defaults():
    with _client() as client:
        item = _create(client, name="White Oak Shaker Door", tags="oak, door", cost="120")
        assert item["id"]
        assert item["kind"] == "material"
        assert item["currency"] == "USD"
        assert item["cost"] == 120.0
        assert item["tags"] == ["oak", "door"]
        assert item["createdAt"] == item["updatedAt"]
        assert item["createdAt"].endswith("Z")


def test_create_item_requires_name():
    with _client() as client:
        resp = client.post("/items", json={"description": "nameless"})
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Item name is required"}


def test_create_ignores_client_id_and_timestamps():
    with _client() as client:
        item = _create(client, id="forged", createdAt="2000-01-01T00:00:00Z")
        assert item["id"] != "forged"
        assert not item["createdAt"].startswith("2000")


def test_get_item_and_not_found():
    with _client() as client:
        item = _create(client)
        resp = client.get(f"/items/{item['id']}")
        assert resp.status_code == 200
        assert resp.json() == item

        resp = client.get("/items/missing")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Item not found"}


def test_update_merges_partial_patch():
    with _client() as client:
        item = _create(client, description="before", tags=["a"])
        resp = client.put(f"/items/{item['id']}", json={"description": "after", "id": "other"})
        assert resp.status_code == 200
        updated = resp.json()
        assert updated["id"] == item["id"]
        assert updated["description"] == "after"
        assert updated["name"] == "Sample"
        assert updated["tags"] == ["a"]
        assert updated["createdAt"] == item["createdAt"]
        assert updated["updatedAt"] >= item["updatedAt"]


def test_update_unknown_item():
    with _client() as client:
        resp = client.put("/items/missing", json={"name": "x"})
        assert resp.status_code == 404


def test_delete_item():
    with _client() as client:
        item = _create(client)
        resp = client.delete(f"/items/{item['id']}")
        assert resp.status_code == 204
        assert client.get(f"/items/{item['id']}").status_code == 404
        assert client.delete(f"/items/{item['id']}").status_code == 404


# ============================================================================
# Tests: listing and tags
# ============================================================================

def test_list_items_filters():
    with _client() as client:
        parent = client.post("/categories", json={"name": "Materials"}).json()
        child = client.post("/categories", json={"name": "Stone", "parentId": parent["id"]}).json()
        _create(client, name="Quartz", categories=[child["id"]], tags=["stone"])
        _create(client, name="Oak", categories=[parent["id"]], tags=["wood"])
        _create(client, name="Loose note", kind="note", tags=["misc"])

        names = lambda resp: [i["name"] for i in resp.json()]
        assert names(client.get("/items")) == ["Quartz", "Oak", "Loose note"]
        assert names(client.get("/items", params={"query": "QUA"})) == ["Quartz"]
        assert names(client.get("/items", params={"category": parent["id"]})) == ["Quartz", "Oak"]
        assert names(client.get("/items", params={"category": child["id"]})) == ["Quartz"]
        assert names(client.get("/items", params={"category": "global"})) == ["Quartz", "Oak", "Loose note"]
        assert names(client.get("/items", params={"tags": "wood,misc"})) == ["Oak", "Loose note"]
        assert names(client.get("/items", params={"category": "nope"})) == []


def test_list_tags():
    with _client() as client:
        _create(client, tags=["b", "a"])
        _create(client, tags=["a", "c"])
        resp = client.get("/tags")
        assert resp.status_code == 200
        assert resp.json() == ["a", "b", "c"]


# ============================================================================
# Tests: import / export
# ============================================================================

def test_export_bundle_and_header():
    with _client() as client:
        _create(client, name="One")
        resp = client.get("/items/export")
        assert resp.status_code == 200
        assert "attachment" in resp.headers["content-disposition"]
        assert "design-vault-export.json" in resp.headers["content-disposition"]
        body = resp.json()
        assert body["version"] == "1.0"
        assert [i["name"] for i in body["items"]] == ["One"]


def test_import_replaces_everything_with_fresh_ids():
    with _client() as client:
        _create(client, name="Old")
        exported = client.get("/items/export").json()
        original_id = exported["items"][0]["id"]

        bundle = {"version": "1.0", "items": [
            {"id": original_id, "name": "New A", "createdAt": "2001-01-01T00:00:00Z"},
            {"name": "New B"},
        ]}
        resp = client.post("/items/import", json=bundle)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Imported 2 items", "count": 2}

        items = client.get("/items").json()
        assert [i["name"] for i in items] == ["New A", "New B"]
        assert original_id not in [i["id"] for i in items]
        assert not items[0]["createdAt"].startswith("2001")


def test_import_export_reimport_preserves_content():
    with _client() as client:
        _create(client, name="Tile", tags=["x"], dimensions={"width": 12, "unit": "in"})
        exported = client.get("/items/export").json()
        client.post("/items/import", json=exported)
        again = client.get("/items/export").json()
        content = lambda bundle: [Item.from_dict(i).content() for i in bundle["items"]]
        assert content(again) == content(exported)


def test_malformed_import_changes_nothing():
    with _client() as client:
        _create(client, name="Keep me")
        for bad in ({"items": "nope"}, {"version": "1.0"}, ["x"], {"items": [{"name": "ok"}, {"tags": []}]}):
            resp = client.post("/items/import", json=bad)
            assert resp.status_code == 400
            assert resp.json()["detail"].startswith("Invalid import format")
        assert [i["name"] for i in client.get("/items").json()] == ["Keep me"]


def test_import_with_bad_asset_is_rejected_and_keeps_collection():
    with _client() as client:
        _create(client, name="Keep me")
        for asset in (
            {"url": "http://x/a.png", "width": "wide"},
            {"url": "http://x/a.png", "alt": 5},
            {"url": "http://x/a.png", "id": 123},
            {"url": 123},
        ):
            bundle = {"version": "1.0", "items": [{"name": "Tile", "assets": [asset]}]}
            resp = client.post("/items/import", json=bundle)
            assert resp.status_code == 400, asset

        assert client.get("/items").status_code == 200
        assert [i["name"] for i in client.get("/items").json()] == ["Keep me"]
        assert client.get("/items/export").status_code == 200
        assert client.get("/flashcards/due").status_code == 200


def test_create_with_bad_asset_is_400():
    with _client() as client:
        resp = client.post("/items", json={"name": "Tile", "assets": [{"url": "http://x/a.png", "width": "wide"}]})
        assert resp.status_code == 400
        assert client.get("/items").json() == []


def test_asset_sizes_are_coerced_to_int():
    with _client() as client:
        item = _create(client, assets=[{"url": "http://x/a.png", "width": "800", "height": 600.0}])
        asset = item["assets"][0]
        assert asset["width"] == 800
        assert asset["height"] == 600
        assert client.get(f"/items/{item['id']}").status_code == 200
