"""Shared fixtures: in-memory stores, a manual clock and ticker, and an API client."""

import asyncio
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from src.accounts.dependencies import set_current_account_getter
from src.accounts.models import Account, Role
from src.accounts.service import AccountModerationService
from src.comments.abuse import AbuseDetector
from src.comments.admission import AdmissionGuard
from src.comments.models import Comment
from src.comments.service import CommentService
from src.email.schemas import SendEmailResponse
from src.notifications.fanout import NotificationFanout
from src.notifications.models import Notification, NotificationSettings
from src.pages.directory import PageInfo


# ==============================================================================
# Time
# ==============================================================================


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class ManualTicker:
    """Records requested waits instead of sleeping.

    Advances the clock by the requested delay and sets the stop event once
    ``stop_after`` waits have been requested.
    """

    def __init__(self, clock: ManualClock | None = None, stop_after: int | None = None):
        self.clock = clock
        self.stop_after = stop_after
        self.waits: list[float] = []

    async def wait(self, seconds: float, stop_event: asyncio.Event) -> None:
        self.waits.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds=seconds)
        if self.stop_after is not None and len(self.waits) >= self.stop_after:
            stop_event.set()
        await asyncio.sleep(0)


# ==============================================================================
# Stores
# ==============================================================================


class InMemoryAccountStore:
    def __init__(self):
        self.accounts: dict[UUID, Account] = {}

    def add(self, account: Account) -> Account:
        self.accounts[account.account_id] = account
        return account

    async def get(self, account_id: UUID) -> Account | None:
        return self.accounts.get(account_id)

    async def get_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
        return {i: self.accounts[i] for i in account_ids if i in self.accounts}

    async def set_last_comment_at(self, account_id: UUID, when: datetime) -> None:
        self.accounts[account_id].last_comment_at = when

    async def set_frozen_until(self, account_id: UUID, until: datetime | None) -> None:
        self.accounts[account_id].frozen_until = until

    async def set_blocked(self, account_id: UUID, blocked: bool) -> None:
        self.accounts[account_id].is_blocked = blocked


class InMemoryCommentStore:
    def __init__(self):
        self.comments: dict[UUID, Comment] = {}
        self.counts: dict[UUID, int] = {}

    async def insert(self, comment: Comment) -> None:
        self.comments[comment.comment_id] = comment
        if comment.paragraph_id is not None:
            self.counts[comment.paragraph_id] = self.counts.get(comment.paragraph_id, 0) + 1

    async def get(self, comment_id: UUID) -> Comment | None:
        return self.comments.get(comment_id)

    async def authors_by_ip_since(self, origin_ip: str, since: datetime) -> set[UUID]:
        return {
            c.author_id
            for c in self.comments.values()
            if c.origin_ip == origin_ip and c.created_at > since
        }

    async def mark_deleted(self, comment: Comment, deleted_at: datetime) -> Comment:
        comment.is_deleted = True
        comment.deleted_at = deleted_at
        comment.content = ""
        if comment.paragraph_id is not None and self.counts.get(comment.paragraph_id, 0) > 0:
            self.counts[comment.paragraph_id] -= 1
        return comment

    async def paragraph_counts(self) -> dict[UUID, int]:
        return dict(self.counts)

    async def live_paragraph_counts(self) -> dict[UUID, int]:
        return dict(
            Counter(
                c.paragraph_id
                for c in self.comments.values()
                if c.paragraph_id is not None and not c.is_deleted
            )
        )

    async def adjust_paragraph_count(self, paragraph_id: UUID, delta: int) -> None:
        self.counts[paragraph_id] = self.counts.get(paragraph_id, 0) + delta


class InMemoryNotificationStore:
    def __init__(self):
        self.rows: list[Notification] = []
        self.fail_inserts_after: int | None = None
        self.write_calls = 0

    async def insert_many(self, notifications: Sequence[Notification]) -> None:
        """Apply rows in order; ``fail_inserts_after`` simulates a batch cut short."""
        self.write_calls += 1
        for notification in notifications:
            if self.fail_inserts_after is not None and len(self.rows) >= self.fail_inserts_after:
                msg = "notification store unavailable"
                raise ConnectionError(msg)
            self.rows.append(notification)

    async def list_unsent(self, since: datetime | None = None) -> list[Notification]:
        return [
            n
            for n in self.rows
            if not n.email_sent and (since is None or n.created_at > since)
        ]

    async def mark_sent(self, notifications: Sequence[Notification]) -> bool:
        if any(n.email_sent for n in notifications):
            return False
        for notification in notifications:
            notification.email_sent = True
        return True

    def for_user(self, user_id: UUID) -> list[Notification]:
        return [n for n in self.rows if n.user_id == user_id]


class InMemorySettingsStore:
    def __init__(self):
        self.settings: dict[UUID, NotificationSettings] = {}

    def put(self, settings: NotificationSettings) -> NotificationSettings:
        self.settings[settings.user_id] = settings
        return settings

    async def get_or_create(self, user_id: UUID) -> NotificationSettings:
        if user_id not in self.settings:
            self.settings[user_id] = NotificationSettings(user_id=user_id)
        return self.settings[user_id]

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, NotificationSettings]:
        return {i: self.settings[i] for i in user_ids if i in self.settings}

    async def save(self, settings: NotificationSettings) -> NotificationSettings:
        self.settings[settings.user_id] = settings
        return settings


class InMemoryPageDirectory:
    def __init__(self):
        self.pages: dict[UUID, PageInfo] = {}
        self.followers: dict[UUID, list[UUID]] = {}
        self.paragraphs: dict[UUID, UUID] = {}

    def add_page(
        self, title: str = "Digital Government", slug: str = "digital-government",
        chapter_slug: str | None = "strategy",
    ) -> PageInfo:
        page = PageInfo(page_id=uuid4(), title=title, slug=slug, chapter_slug=chapter_slug)
        self.pages[page.page_id] = page
        return page

    async def followers_of(self, page_id: UUID) -> list[UUID]:
        return list(self.followers.get(page_id, []))

    async def page_info(self, page_id: UUID) -> PageInfo | None:
        return self.pages.get(page_id)

    async def page_for_paragraph(self, paragraph_id: UUID) -> UUID | None:
        return self.paragraphs.get(paragraph_id)


class FakeMailSender:
    """Mail transport double. Behaviour per recipient is configurable."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.failing: set[str] = set()
        self.rejecting: set[str] = set()
        self.hanging: set[str] = set()
        self.text_bodies: list[str | None] = []

    async def send(
        self, to: str, subject: str, html_body: str, text_body: str | None = None
    ) -> SendEmailResponse:
        if to in self.hanging:
            await asyncio.sleep(60)
        if to in self.failing:
            msg = "SMTP connection refused"
            raise ConnectionError(msg)
        if to in self.rejecting:
            return SendEmailResponse(success=False, error="Mailbox unavailable")
        self.sent.append((to, subject, html_body))
        self.text_bodies.append(text_body)
        return SendEmailResponse(success=True, message_id=f"msg-{len(self.sent)}")

    def subjects_to(self, to: str) -> list[str]:
        return [subject for address, subject, _ in self.sent if address == to]


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def start_time() -> datetime:
    return datetime(2026, 3, 10, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(start_time: datetime) -> ManualClock:
    return ManualClock(start_time)


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def comment_store() -> InMemoryCommentStore:
    return InMemoryCommentStore()


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def page_directory() -> InMemoryPageDirectory:
    return InMemoryPageDirectory()


@pytest.fixture
def mail_sender() -> FakeMailSender:
    return FakeMailSender()


@pytest.fixture
def make_account(account_store: InMemoryAccountStore):
    """Create and store an account."""

    def _make(
        username: str = "aigerim",
        roles: Iterable[Role] = (Role.VIEWER,),
        email: str | None = None,
        **kwargs,
    ) -> Account:
        account_id = uuid4()
        return account_store.add(
            Account(
                account_id=account_id,
                username=username,
                email=email or f"{username}-{account_id.hex[:6]}@example.kz",
                roles=frozenset(roles),
                **kwargs,
            )
        )

    return _make


@pytest.fixture
def fanout(
    notification_store, settings_store, account_store, comment_store, page_directory, clock
) -> NotificationFanout:
    return NotificationFanout(
        notification_store=notification_store,
        settings_store=settings_store,
        account_store=account_store,
        comment_store=comment_store,
        page_directory=page_directory,
        clock=clock,
    )


@pytest.fixture
def comment_service(account_store, comment_store, fanout, clock) -> CommentService:
    return CommentService(
        admission_guard=AdmissionGuard(account_store, comment_store),
        abuse_detector=AbuseDetector(account_store, comment_store),
        fanout=fanout,
        comment_store=comment_store,
        account_store=account_store,
        clock=clock,
    )


ACCOUNT_HEADER = "X-Account-ID"


async def _account_from_header(request: Request) -> UUID | None:
    value = request.headers.get(ACCOUNT_HEADER)
    return UUID(value) if value else None


@pytest.fixture
def app(account_store, settings_store, comment_service, fanout):
    """Application with in-memory services on app.state (lifespan not run)."""
    from src.main import create_app

    application = create_app()
    application.state.account_store = account_store
    application.state.settings_store = settings_store
    application.state.comment_service = comment_service
    application.state.fanout = fanout
    application.state.moderation_service = AccountModerationService(account_store)

    set_current_account_getter(_account_from_header)
    yield application
    set_current_account_getter(None)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers():
    """Headers identifying the caller as ``account``."""

    def _headers(account: Account) -> dict[str, str]:
        return {ACCOUNT_HEADER: str(account.account_id)}

    return _headers


@pytest.fixture
def ticker(clock) -> ManualTicker:
    return ManualTicker(clock)
