"""Tests for notification email templates."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from src.email.templates import (
    digest_subject,
    page_url,
    render_digest_email,
    render_notification_email,
)
from src.notifications.models import (
    CommentEventParams,
    EmailFrequency,
    NotificationType,
    create_notification,
)
from src.pages.directory import PageInfo


BASE_URL = "https://strategy.example.kz/"
CREATED = datetime(2026, 3, 10, 9, 30, tzinfo=UTC)


def _page(chapter_slug="infrastructure"):
    return PageInfo(
        page_id=uuid4(), title="Data Centers", slug="data-centers", chapter_slug=chapter_slug
    )


def _notification(page, username="Dana", preview="Agreed", created_at=CREATED):
    return create_notification(
        user_id=uuid4(),
        notification_type=NotificationType.NEW_COMMENT,
        params=CommentEventParams(username=username, page_name=page.title, preview=preview),
        created_at=created_at,
        page_id=page.page_id,
    )


class TestLinks:
    def test_page_url_with_chapter(self):
        assert page_url(BASE_URL, _page()) == (
            "https://strategy.example.kz/infrastructure/data-centers"
        )

    def test_page_url_without_chapter(self):
        assert page_url(BASE_URL, _page(None)) == "https://strategy.example.kz/data-centers"

    def test_unknown_page_links_to_site(self):
        assert page_url(BASE_URL, None) == "https://strategy.example.kz"


def test_digest_subject():
    assert digest_subject(EmailFrequency.DAILY, 4) == (
        "Your daily notification digest - 4 new notification(s)"
    )


class TestRenderNotificationEmail:
    def test_contains_message_link_and_settings(self):
        page = _page()

        html, text = render_notification_email(_notification(page), page, BASE_URL)

        assert "New comment on followed page" in html
        assert "https://strategy.example.kz/infrastructure/data-centers" in html
        assert "https://strategy.example.kz/profile/settings" in html
        assert "Dana commented on" in text

    def test_user_text_is_escaped(self):
        page = _page()
        notification = _notification(page, username="<script>x</script>")

        html, _ = render_notification_email(notification, page, BASE_URL)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class TestRenderDigestEmail:
    def test_lists_every_notification_in_order(self):
        page = _page()
        first = _notification(page, preview="first one")
        second = _notification(page, preview="second one", created_at=CREATED + timedelta(minutes=5))

        html, text = render_digest_email(
            [first, second], {page.page_id: page}, EmailFrequency.HOURLY, BASE_URL
        )

        assert "Your hourly notification digest" in html
        assert "2 new notification(s)" in html
        assert html.index("first one") < html.index("second one")
        assert "Mar 10, 2026 09:30 UTC" in text

    def test_missing_page_falls_back_to_site_link(self):
        page = _page()

        html, _ = render_digest_email(
            [_notification(page)], {}, EmailFrequency.DAILY, BASE_URL
        )

        assert 'href="https://strategy.example.kz"' in html
