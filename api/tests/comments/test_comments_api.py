"""Tests for the comment HTTP endpoints."""

from datetime import timedelta
from uuid import uuid4

from src.accounts.models import Role


class TestCreateCommentEndpoint:
    def test_creates_comment(self, client, make_account, auth_headers, comment_store):
        author = make_account()
        page_id = str(uuid4())

        response = client.post(
            "/v1/comments",
            json={"page_id": page_id, "content": "  Well argued  "},
            headers={**auth_headers(author), "X-Forwarded-For": "198.51.100.20, 10.0.0.1"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["page_id"] == page_id
        assert data["content"] == "Well argued"
        (stored,) = comment_store.comments.values()
        assert stored.origin_ip == "198.51.100.20"

    def test_unresolvable_client_address_records_no_ip(
        self, client, make_account, auth_headers, comment_store
    ):
        author = make_account()

        response = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "content": "from nowhere"},
            headers={**auth_headers(author), "X-Forwarded-For": "2001:db8::1"},
        )

        assert response.status_code == 201
        (stored,) = comment_store.comments.values()
        assert stored.origin_ip is None

    def test_requires_identity(self, client):
        response = client.post("/v1/comments", json={"page_id": str(uuid4()), "content": "x"})

        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"

    def test_unknown_account_is_unauthorized(self, client, auth_headers, make_account):
        ghost = make_account()
        response = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "content": "x"},
            headers={"X-Account-ID": str(uuid4()), "X-Request-ID": "req-401"},
        )

        assert response.status_code == 401
        assert response.json() == {
            "error": True,
            "code": "unauthorized",
            "message": "Not allowed to comment",
            "status_code": 401,
            "request_id": "req-401",
        }
        assert ghost.last_comment_at is None

    def test_throttled_author_gets_429_with_retry_after(
        self, client, make_account, auth_headers, clock
    ):
        author = make_account(last_comment_at=clock.now() - timedelta(seconds=12))

        response = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "content": "again"},
            headers=auth_headers(author),
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "18"
        data = response.json()
        assert data["code"] == "too_many_requests"
        assert data["wait_seconds"] == 18
        assert data["error"] is True
        assert data["status_code"] == 429
        assert data["request_id"] == response.headers["X-Request-ID"]

    def test_frozen_author_gets_403_with_remaining_seconds(
        self, client, make_account, auth_headers, clock
    ):
        author = make_account(frozen_until=clock.now() + timedelta(hours=1))

        response = client.post(
            "/v1/comments",
            json={"paragraph_id": str(uuid4()), "content": "hi"},
            headers=auth_headers(author),
        )

        assert response.status_code == 403
        data = response.json()
        assert data["code"] == "account_frozen"
        assert data["error"] is True
        assert data["status_code"] == 403
        assert data["remaining_seconds"] == 3600
        assert data["frozen_until"].startswith("2026-03-10T13:00:00")

    def test_both_targets_is_a_validation_error(self, client, make_account, auth_headers):
        author = make_account()

        response = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "paragraph_id": str(uuid4()), "content": "x"},
            headers=auth_headers(author),
        )

        assert response.status_code == 422

    def test_reply_to_unknown_parent_is_404(self, client, make_account, auth_headers):
        author = make_account()

        response = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "parent_id": str(uuid4()), "content": "x"},
            headers=auth_headers(author),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "comment_not_found"


class TestDeleteCommentEndpoint:
    def test_author_deletes_own_comment(self, client, make_account, auth_headers):
        author = make_account()
        created = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "content": "oops"},
            headers=auth_headers(author),
        ).json()

        response = client.delete(
            f"/v1/comments/{created['comment_id']}", headers=auth_headers(author)
        )

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_stranger_cannot_delete(self, client, make_account, auth_headers):
        author, stranger = make_account("author"), make_account("stranger")
        created = client.post(
            "/v1/comments",
            json={"page_id": str(uuid4()), "content": "mine"},
            headers=auth_headers(author),
        ).json()

        response = client.delete(
            f"/v1/comments/{created['comment_id']}", headers=auth_headers(stranger)
        )

        assert response.status_code == 403
        assert response.json()["code"] == "permission_denied"

    def test_missing_comment_is_404(self, client, make_account, auth_headers):
        admin = make_account("admin", roles={Role.ADMIN})

        response = client.delete(f"/v1/comments/{uuid4()}", headers=auth_headers(admin))

        assert response.status_code == 404
