"""Tests for category endpoints: flat list, tree, descendants, guarded delete."""

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


def _cat(client, name, parent_id=None):
    body = {"name": name}
    if parent_id is not None:
        body["parentId"] = parent_id
    resp = client.post("/categories", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ============================================================================
# Tests: create / list / tree
# ============================================================================

def test_create_and_list_flat():
    with _client() as client:
        root = _cat(client, "Root")
        child = _cat(client, "Materials", root["id"])
        assert child["parentId"] == root["id"]
        assert root["parentId"] is None

        resp = client.get("/categories")
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json()] == ["Root", "Materials"]


def test_create_requires_name():
    with _client() as client:
        for body in ({}, {"name": ""}, {"name": "   "}):
            resp = client.post("/categories", json=body)
            assert resp.status_code == 400
            assert resp.json() == {"detail": "Category name is required"}


def test_tree_nests_children():
    with _client() as client:
        root = _cat(client, "Root")
        materials = _cat(client, "Materials", root["id"])
        _cat(client, "Cabinetry", materials["id"])
        _cat(client, "Orphan", "no-such-parent")

        resp = client.get("/categories/tree")
        assert resp.status_code == 200
        forest = resp.json()
        assert [n["name"] for n in forest] == ["Root", "Orphan"]
        assert forest[0]["children"][0]["name"] == "Materials"
        assert forest[0]["children"][0]["children"][0]["name"] == "Cabinetry"
        assert forest[1]["parentId"] == "no-such-parent"


def test_descendants_endpoint():
    with _client() as client:
        root = _cat(client, "Root")
        a = _cat(client, "A", root["id"])
        b = _cat(client, "B", a["id"])
        other = _cat(client, "Other")

        body = client.get(f"/categories/{root['id']}/descendants").json()
        assert body["categoryId"] == root["id"]
        assert body["ids"][0] == root["id"]
        assert set(body["ids"]) == {root["id"], a["id"], b["id"]}
        assert other["id"] not in body["ids"]

        assert client.get("/categories/unknown/descendants").json()["ids"] == []


# ============================================================================
# Tests: update
# ============================================================================

def test_update_name_and_parent():
    with _client() as client:
        root = _cat(client, "Root")
        loose = _cat(client, "Loose")

        resp = client.put(f"/categories/{loose['id']}", json={"name": "Filed", "parentId": root["id"]})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Filed"
        assert resp.json()["parentId"] == root["id"]

        # empty name keeps the old one; omitted parentId keeps the parent
        resp = client.put(f"/categories/{loose['id']}", json={"name": ""})
        assert resp.json()["name"] == "Filed"
        assert resp.json()["parentId"] == root["id"]

        # explicit null moves it back to the root
        resp = client.put(f"/categories/{loose['id']}", json={"parentId": None})
        assert resp.json()["parentId"] is None


def test_update_with_blank_name_keeps_old_name():
    with _client() as client:
        cat = _cat(client, "Stone")
        resp = client.put(f"/categories/{cat['id']}", json={"name": "   "})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Stone"
        assert client.get("/categories").json()[0]["name"] == "Stone"


def test_update_rejects_cycle():
    with _client() as client:
        root = _cat(client, "Root")
        child = _cat(client, "Child", root["id"])
        resp = client.put(f"/categories/{root['id']}", json={"parentId": child["id"]})
        assert resp.status_code == 400
        resp = client.put(f"/categories/{root['id']}", json={"parentId": root["id"]})
        assert resp.status_code == 400


def test_update_unknown_category():
    with _client() as client:
        resp = client.put("/categories/missing", json={"name": "x"})
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Category not found"}


# ============================================================================
# Tests: guarded delete
# ============================================================================

def test_delete_refused_with_children():
    with _client() as client:
        root = _cat(client, "Root")
        _cat(client, "Child", root["id"])
        resp = client.delete(f"/categories/{root['id']}")
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Cannot delete category with children"}
        assert len(client.get("/categories").json()) == 2


def test_delete_refused_when_in_use():
    with _client() as client:
        cat = _cat(client, "Used")
        client.post("/items", json={"name": "Thing", "categories": [cat["id"]]})
        resp = client.delete(f"/categories/{cat['id']}")
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Cannot delete category that is used by items"}


def test_delete_leaf_then_parent():
    with _client() as client:
        root = _cat(client, "Root")
        child = _cat(client, "Child", root["id"])
        assert client.delete(f"/categories/{child['id']}").status_code == 204
        assert client.delete(f"/categories/{root['id']}").status_code == 204
        assert client.get("/categories").json() == []


def test_delete_unknown_category():
    with _client() as client:
        assert client.delete("/categories/missing").status_code == 404
