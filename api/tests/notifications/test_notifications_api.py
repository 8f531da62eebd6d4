"""Tests for notification settings endpoints."""

from src.notifications.models import EmailFrequency


def test_get_creates_defaults(client, make_account, auth_headers):
    account = make_account()

    response = client.get("/v1/notifications/settings", headers=auth_headers(account))

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == str(account.account_id)
    assert data["notify_on_comment_reply"] is True
    assert data["email_frequency"] == "none"


def test_partial_update_keeps_other_fields(client, make_account, auth_headers, settings_store):
    account = make_account()

    response = client.put(
        "/v1/notifications/settings",
        json={"email_frequency": "hourly", "notify_on_followed_page_update": False},
        headers=auth_headers(account),
    )

    assert response.status_code == 200
    stored = settings_store.settings[account.account_id]
    assert stored.email_frequency is EmailFrequency.HOURLY
    assert stored.notify_on_followed_page_update is False
    assert stored.notify_on_comment_reply is True


def test_unknown_frequency_is_rejected(client, make_account, auth_headers):
    account = make_account()

    response = client.put(
        "/v1/notifications/settings",
        json={"email_frequency": "weekly"},
        headers=auth_headers(account),
    )

    assert response.status_code == 422


def test_settings_require_identity(client):
    assert client.get("/v1/notifications/settings").status_code == 401
