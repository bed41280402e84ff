from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from readlater.api.deps import get_current_user_id
from readlater.api.routes import library_items as routes
from readlater.core.errors import LibraryItemNotFound
from readlater.core.security import create_access_token
from readlater.main import app
from readlater.models.library_item import LibraryItem
from readlater.services.library_items import SearchResult

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def build_item(**overrides) -> LibraryItem:
    values = dict(
        id="item-1",
        user_id="user-1",
        state="SUCCEEDED",
        original_url="https://example.com/a",
        slug="a",
        title="A",
        author=None,
        description=None,
        item_type="ARTICLE",
        site_name=None,
        site_icon=None,
        thumbnail=None,
        subscription=None,
        readable_content="<p>body</p>",
        saved_at=NOW,
        archived_at=None,
        deleted_at=None,
        read_at=None,
        published_at=None,
        created_at=NOW,
        updated_at=NOW,
        reading_progress_top_percent=0.0,
        reading_progress_bottom_percent=0.0,
        reading_progress_highest_read_anchor=0,
        word_count=1,
    )
    values.update(overrides)
    return LibraryItem(**values)


@pytest.fixture()
def client():
    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_requests_without_token_are_rejected():
    with TestClient(app) as c:
        resp = c.get("/v1/library-items/item-1")
    assert resp.status_code == 401


def test_bearer_token_identifies_user(monkeypatch):
    seen = {}

    def fake_find(item_id, user_id):
        seen["user_id"] = user_id
        return build_item()

    monkeypatch.setattr(routes, "find_library_item_by_id", fake_find)
    token = create_access_token("user-42")

    with TestClient(app) as c:
        resp = c.get("/v1/library-items/item-1", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert seen["user_id"] == "user-42"


def test_search_parses_query_and_pages(client, monkeypatch):
    captured = {}

    def fake_search(args, user_id):
        captured["args"] = args
        return SearchResult(items=[build_item(), build_item(id="item-2")], count=12)

    monkeypatch.setattr(routes, "search_library_items", fake_search)

    resp = client.get(
        "/v1/library-items/search", params={"q": "in:inbox label:news", "from": 10, "size": 5}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["page"] == {"offset": 10, "size": 5, "total": 12}
    assert [i["id"] for i in body["items"]] == ["item-1", "item-2"]
    assert body["items"][0]["content"] is None
    args = captured["args"]
    assert args.from_ == 10
    assert args.size == 5
    assert args.in_filter.value == "INBOX"


def test_search_returns_content_when_requested(client, monkeypatch):
    monkeypatch.setattr(
        routes, "search_library_items", lambda args, user_id: SearchResult([build_item()], 1)
    )
    resp = client.get("/v1/library-items/search", params={"include_content": "true"})
    assert resp.json()["items"][0]["content"] == "<p>body</p>"


def test_search_rejects_bad_date(client):
    resp = client.get("/v1/library-items/search", params={"q": "saved:notadate"})
    assert resp.status_code == 400


def test_missing_item_is_404(client, monkeypatch):
    monkeypatch.setattr(routes, "find_library_item_by_id", lambda item_id, user_id: None)
    assert client.get("/v1/library-items/nope").status_code == 404


def test_update_of_vanished_item_is_404(client, monkeypatch):
    def fake_update(item_id, patch, user_id):
        raise LibraryItemNotFound(item_id)

    monkeypatch.setattr(routes, "update_library_item", fake_update)
    resp = client.patch("/v1/library-items/gone", json={"state": "ARCHIVED"})
    assert resp.status_code == 404
    assert "gone" in resp.json()["detail"]


def test_update_forwards_only_set_fields(client, monkeypatch):
    captured = {}

    def fake_update(item_id, patch, user_id):
        captured.update(item_id=item_id, patch=patch, user_id=user_id)
        return build_item(state="ARCHIVED", archived_at=NOW)

    monkeypatch.setattr(routes, "update_library_item", fake_update)
    resp = client.patch("/v1/library-items/item-1", json={"state": "ARCHIVED"})

    assert resp.status_code == 200
    assert resp.json()["state"] == "ARCHIVED"
    assert captured == {"item_id": "item-1", "patch": {"state": "ARCHIVED"}, "user_id": "user-1"}


def test_unknown_bulk_action_is_400(client):
    resp = client.post("/v1/library-items/bulk", json={"action": "EXPLODE", "query": ""})
    assert resp.status_code == 400


def test_bulk_action_reports_updated_rows(client, monkeypatch):
    monkeypatch.setattr(
        routes, "bulk_update_library_items", lambda action, args, user_id, labels=None: 3
    )
    resp = client.post("/v1/library-items/bulk", json={"action": "ARCHIVE", "query": "in:inbox"})
    assert resp.json() == {"action": "ARCHIVE", "updated": 3}


def test_delete_missing_item_is_404(client, monkeypatch):
    monkeypatch.setattr(routes, "delete_library_item_by_id", lambda item_id, user_id: 0)
    assert client.delete("/v1/library-items/nope").status_code == 404

    monkeypatch.setattr(routes, "delete_library_item_by_id", lambda item_id, user_id: 1)
    assert client.delete("/v1/library-items/item-1").status_code == 204


def test_health_echoes_request_id():
    with TestClient(app) as c:
        resp = c.get("/health", headers={"X-Request-Id": "req-123"})

    assert resp.status_code == 200
    assert resp.headers["X-Request-Id"] == "req-123"


def test_request_id_is_generated_when_missing():
    with TestClient(app) as c:
        resp = c.get("/health")
    assert resp.headers["X-Request-Id"]


def test_bulk_rejects_negated_scope_before_updating(client, monkeypatch):
    calls = []
    monkeypatch.setattr(
        routes,
        "bulk_update_library_items",
        lambda action, args, user_id, labels=None: calls.append(args) or 0,
    )

    resp = client.post("/v1/library-items/bulk", json={"action": "DELETE", "query": "-in:archive"})

    assert resp.status_code == 400
    assert calls == []
