"""
tests/test_api_posts.py -- Integration tests for /api/v1/posts routes.

Coverage:
  - public reads: list (paged, newest first, owner email), detail, 404
  - create: auth required, schema rules, owner taken from the token
  - update/delete: owner only (403 for others), 404 for missing posts
  - record-store faults render as server_error; ids and pages past the
    SQLite integer range read as missing / empty
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import bearer, verified_user

_BODY = {"title": "First post", "description": "Some description text"}


@pytest.fixture(autouse=True)
def no_cookies(api_client):
    api_client.client.cookies.clear()
    yield


@pytest.fixture(scope="module")
def owner_token(api_client) -> str:
    return verified_user(api_client, "owner@a.com")


@pytest.fixture(scope="module")
def other_token(api_client) -> str:
    return verified_user(api_client, "other@a.com")


def _create(api_client, token: str, **overrides) -> dict:
    resp = api_client.client.post("/api/v1/posts", headers=bearer(token), json={**_BODY, **overrides})
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()["data"]


class TestCreate:
    def test_create_requires_auth(self, api_client):
        resp = api_client.client.post("/api/v1/posts", headers={"client": "not-browser"}, json=_BODY)
        assert resp.status_code == 401

    def test_create(self, api_client, owner_token):
        post = _create(api_client, owner_token)
        assert post["title"] == "First post"
        assert post["owner_email"] == "owner@a.com"
        assert post["created_at"]

    @pytest.mark.parametrize(
        "body",
        [
            {"title": "ab", "description": "Some description text"},
            {"title": "t" * 51, "description": "Some description text"},
            {"title": "Fine title", "description": "too short"},
            {"title": "Fine title"},
        ],
    )
    def test_schema_rules(self, api_client, owner_token, body):
        resp = api_client.client.post("/api/v1/posts", headers=bearer(owner_token), json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


class TestRead:
    def test_detail_is_public(self, api_client, owner_token):
        post = _create(api_client, owner_token, title="Detail post")
        resp = api_client.client.get(f"/api/v1/posts/{post['id']}")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["title"] == "Detail post"
        assert data["owner_email"] == "owner@a.com"

    def test_missing_post(self, api_client):
        resp = api_client.client.get("/api/v1/posts/999999")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Post not found"

    def test_list_newest_first_and_paged(self, api_client, owner_token, other_token):
        created = [_create(api_client, owner_token if n % 2 else other_token, title=f"Paged {n}") for n in range(11)]

        first = api_client.client.get("/api/v1/posts").json()
        assert first["page"] == 1
        assert first["per_page"] == 10
        assert len(first["data"]) == 10
        assert first["total"] >= 11
        assert first["data"][0]["id"] == created[-1]["id"]
        assert {p["owner_email"] for p in first["data"]} == {"owner@a.com", "other@a.com"}

        second = api_client.client.get("/api/v1/posts", params={"page": 2}).json()
        assert second["page"] == 2
        assert created[0]["id"] not in {p["id"] for p in first["data"]}
        assert second["data"][0]["id"] not in {p["id"] for p in first["data"]}

    def test_page_zero_is_first_page(self, api_client):
        zero = api_client.client.get("/api/v1/posts", params={"page": 0}).json()
        one = api_client.client.get("/api/v1/posts", params={"page": 1}).json()
        assert zero["page"] == 1
        assert [p["id"] for p in zero["data"]] == [p["id"] for p in one["data"]]


class TestUpdate:
    def test_owner_updates(self, api_client, owner_token):
        post = _create(api_client, owner_token)
        resp = api_client.client.put(
            f"/api/v1/posts/{post['id']}", headers=bearer(owner_token), json={"title": "Renamed"}
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["title"] == "Renamed"
        assert data["description"] == _BODY["description"]

    def test_other_user_forbidden(self, api_client, owner_token, other_token):
        post = _create(api_client, owner_token)
        resp = api_client.client.put(
            f"/api/v1/posts/{post['id']}", headers=bearer(other_token), json={"title": "Hijacked"}
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Unauthorized to update this resource"
        assert api_client.post_store.get_post(post["id"]).title == _BODY["title"]

    def test_empty_update_rejected(self, api_client, owner_token):
        post = _create(api_client, owner_token)
        resp = api_client.client.put(f"/api/v1/posts/{post['id']}", headers=bearer(owner_token), json={})
        assert resp.status_code == 400

    def test_missing_post(self, api_client, owner_token):
        resp = api_client.client.put("/api/v1/posts/999999", headers=bearer(owner_token), json={"title": "Nope"})
        assert resp.status_code == 404


class TestDelete:
    def test_other_user_forbidden(self, api_client, owner_token, other_token):
        post = _create(api_client, owner_token)
        resp = api_client.client.delete(f"/api/v1/posts/{post['id']}", headers=bearer(other_token))
        assert resp.status_code == 403
        assert api_client.post_store.get_post(post["id"]) is not None

    def test_owner_deletes(self, api_client, owner_token):
        post = _create(api_client, owner_token)
        resp = api_client.client.delete(f"/api/v1/posts/{post['id']}", headers=bearer(owner_token))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Post deleted successfully"
        assert api_client.client.get(f"/api/v1/posts/{post['id']}").status_code == 404

    def test_requires_auth(self, api_client):
        resp = api_client.client.delete("/api/v1/posts/1", headers={"client": "not-browser"})
        assert resp.status_code == 401


class TestOutOfRange:
    """Integers past the SQLite 64-bit range are valid input and must not fault."""

    def test_huge_page_is_empty(self, api_client):
        resp = api_client.client.get("/api/v1/posts", params={"page": 10**19})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        body = resp.json()
        assert body["data"] == []
        assert body["page"] == 10**19

    def test_huge_post_id_is_missing(self, api_client):
        resp = api_client.client.get(f"/api/v1/posts/{10**19}")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Post not found"

    def test_huge_post_id_update_and_delete(self, api_client, owner_token):
        url = f"/api/v1/posts/{-(10**19)}"
        assert api_client.client.put(url, headers=bearer(owner_token), json={"title": "Nope"}).status_code == 404
        assert api_client.client.delete(url, headers=bearer(owner_token)).status_code == 404


class TestStoreFaults:
    """Record-store failures surface as server_error with the cause class as detail."""

    @staticmethod
    def _fault(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def test_list_store_failure(self, api_client):
        with patch.object(api_client.post_store, "list_posts", side_effect=self._fault):
            resp = api_client.client.get("/api/v1/posts")
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": {"code": "server_error", "message": "Server error", "detail": "OperationalError"},
        }

    def test_owner_lookup_failure(self, api_client, owner_token):
        post = _create(api_client, owner_token)
        with patch.object(api_client.user_store, "get_emails", side_effect=self._fault):
            resp = api_client.client.get(f"/api/v1/posts/{post['id']}")
        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "server_error"

    def test_create_store_failure(self, api_client, owner_token):
        with patch.object(api_client.post_store, "create_post", side_effect=self._fault):
            resp = api_client.client.post("/api/v1/posts", headers=bearer(owner_token), json=_BODY)
        assert resp.status_code == 500
        assert resp.json()["error"]["detail"] == "OperationalError"
