"""Background worker delivering notification email.

Every tick runs the immediate pass. The hourly digest runs when an hour has
passed since the last successful hourly run, the daily digest when the UTC
date has moved past the last successful daily run. Watermarks live on the
instance and start at construction time, so a restart skips digests that
were due rather than risk sending them twice. ``email_sent`` on each row is
the authoritative record of delivery.
"""

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta
from uuid import UUID

from src.accounts.store import AccountStore
from src.core.clock import Clock, Ticker
from src.core.logging import get_logger
from src.email.service import MailSender
from src.email.templates import digest_subject, render_digest_email, render_notification_email
from src.pages.directory import PageDirectory, PageInfo

from .models import EmailFrequency, Notification
from .store import NotificationStore, SettingsStore


logger = get_logger(__name__)


HOURLY_WINDOW = timedelta(hours=1)
DAILY_WINDOW = timedelta(hours=24)


class DigestScheduler:
    """Polls for unsent notifications and emails them at each user's cadence.

    Send-then-mark: a row is marked sent only after the mail sender reports
    success, through a conditional write. A crash between the two can cause
    one duplicate email, never a silent drop.
    """

    def __init__(
        self,
        notification_store: NotificationStore,
        settings_store: SettingsStore,
        account_store: AccountStore,
        mail_sender: MailSender,
        page_directory: PageDirectory,
        clock: Clock,
        ticker: Ticker,
        base_url: str,
        tick_seconds: float = 60.0,
        error_backoff_seconds: float = 300.0,
        send_timeout_seconds: float = 5.0,
    ) -> None:
        self.notification_store = notification_store
        self.settings_store = settings_store
        self.account_store = account_store
        self.mail_sender = mail_sender
        self.page_directory = page_directory
        self.clock = clock
        self.ticker = ticker
        self.base_url = base_url
        self.tick_seconds = tick_seconds
        self.error_backoff_seconds = error_backoff_seconds
        self.send_timeout_seconds = send_timeout_seconds

        started_at = clock.now()
        self.last_hourly_run: datetime = started_at
        self.last_daily_run = started_at.date()

        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def start(self) -> None:
        """Start the background worker."""
        if self._task is not None and not self._task.done():
            logger.warning("digest_scheduler_already_running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="digest_scheduler")

    async def stop(self) -> None:
        """Signal the worker and wait for the current tick to finish."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        """Tick until stopped. The stop signal is only observed between ticks."""
        logger.info(
            "digest_scheduler_started",
            tick_seconds=self.tick_seconds,
            error_backoff_seconds=self.error_backoff_seconds,
        )
        while not self._stop_event.is_set():
            delay = self.tick_seconds
            try:
                await self.tick()
            except Exception:
                logger.exception(
                    "digest_tick_failed", backoff_seconds=self.error_backoff_seconds
                )
                delay = self.error_backoff_seconds
            await self.ticker.wait(delay, self._stop_event)
        logger.info("digest_scheduler_stopped")

    # ==========================================================================
    # Tick
    # ==========================================================================

    async def tick(self) -> None:
        """Run the passes that are due at the current instant.

        A failing pass does not stop the others. Once every due pass has run,
        the first failure is raised so the worker loop backs off.
        """
        now = self.clock.now()
        failures: list[Exception] = []

        await self._run_pass("immediate", self.immediate_pass, failures)

        # Watermarks only advance on success so a failed digest is retried
        hourly_due = now - self.last_hourly_run >= HOURLY_WINDOW
        if hourly_due and await self._run_pass(
            "hourly", lambda: self.hourly_pass(now), failures
        ):
            self.last_hourly_run = now

        today = now.date()
        daily_due = today > self.last_daily_run
        if daily_due and await self._run_pass(
            "daily", lambda: self.daily_pass(now), failures
        ):
            self.last_daily_run = today

        if failures:
            raise failures[0]

    async def _run_pass(
        self,
        name: str,
        run: Callable[[], Awaitable[int]],
        failures: list[Exception],
    ) -> bool:
        """Run one pass, recording its failure instead of aborting the tick."""
        try:
            sent = await run()
        except Exception as e:
            logger.exception("digest_pass_failed", digest_pass=name)
            failures.append(e)
            return False
        if sent:
            logger.info("digest_pass_completed", digest_pass=name, emails_sent=sent)
        return True

    # ==========================================================================
    # Passes
    # ==========================================================================

    async def immediate_pass(self) -> int:
        """Email each unsent notification of users on the immediate cadence.

        Returns:
            Number of emails delivered and marked
        """
        unsent = await self.notification_store.list_unsent()
        due = await self._select_for_frequency(unsent, EmailFrequency.IMMEDIATE)
        if not due:
            return 0

        accounts = await self.account_store.get_many(due)
        pages = await self._load_pages(due)

        sent = 0
        for user_id, notifications in due.items():
            to = self._address_of(accounts, user_id)
            if to is None:
                continue
            for notification in notifications:
                page = pages.get(notification.page_id) if notification.page_id else None
                html, text = render_notification_email(notification, page, self.base_url)
                if await self._deliver(to, notification.title, html, text, [notification]):
                    sent += 1
        return sent

    async def hourly_pass(self, now: datetime) -> int:
        return await self._digest_pass(EmailFrequency.HOURLY, now - HOURLY_WINDOW)

    async def daily_pass(self, now: datetime) -> int:
        return await self._digest_pass(EmailFrequency.DAILY, now - DAILY_WINDOW)

    async def _digest_pass(self, frequency: EmailFrequency, since: datetime) -> int:
        """Send one digest per recipient on ``frequency`` with unsent rows since ``since``."""
        unsent = await self.notification_store.list_unsent(since=since)
        due = await self._select_for_frequency(unsent, frequency)
        if not due:
            return 0

        accounts = await self.account_store.get_many(due)
        pages = await self._load_pages(due)

        sent = 0
        for user_id, notifications in due.items():
            to = self._address_of(accounts, user_id)
            if to is None:
                continue
            html, text = render_digest_email(notifications, pages, frequency, self.base_url)
            subject = digest_subject(frequency, len(notifications))
            if await self._deliver(to, subject, html, text, notifications):
                sent += 1
        return sent

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _select_for_frequency(
        self, notifications: Sequence[Notification], frequency: EmailFrequency
    ) -> dict[UUID, list[Notification]]:
        """Group rows by recipient, keeping recipients currently on ``frequency``."""
        by_user: dict[UUID, list[Notification]] = defaultdict(list)
        for notification in notifications:
            if not notification.email_sent:
                by_user[notification.user_id].append(notification)
        if not by_user:
            return {}

        settings = await self.settings_store.get_many(by_user)
        due = {}
        for user_id, items in by_user.items():
            user_settings = settings.get(user_id)
            if user_settings is not None and user_settings.email_frequency is frequency:
                due[user_id] = sorted(items, key=lambda n: n.created_at)
        return due

    async def _load_pages(
        self, due: dict[UUID, list[Notification]]
    ) -> dict[UUID, PageInfo]:
        page_ids = {
            n.page_id for items in due.values() for n in items if n.page_id is not None
        }
        pages = {}
        for page_id in page_ids:
            page = await self.page_directory.page_info(page_id)
            if page is not None:
                pages[page_id] = page
        return pages

    @staticmethod
    def _address_of(accounts: dict, user_id: UUID) -> str | None:
        account = accounts.get(user_id)
        if account is None or not account.email:
            logger.warning("notification_recipient_without_email", user_id=str(user_id))
            return None
        return account.email

    async def _deliver(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        notifications: list[Notification],
    ) -> bool:
        """Send one email and mark its rows. Send failures leave rows unsent.

        Store errors while marking propagate and abandon the pass.
        """
        notification_ids = [str(n.notification_id) for n in notifications]
        try:
            response = await asyncio.wait_for(
                self.mail_sender.send(to, subject, html, text_body=text),
                timeout=self.send_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "notification_email_timeout",
                notification_ids=notification_ids,
                timeout_seconds=self.send_timeout_seconds,
            )
            return False
        except Exception:
            logger.exception("notification_email_failed", notification_ids=notification_ids)
            return False

        if not response.success:
            logger.warning(
                "notification_email_rejected",
                notification_ids=notification_ids,
                error=response.error,
            )
            return False

        if not await self.notification_store.mark_sent(notifications):
            logger.info("notification_already_marked_sent", notification_ids=notification_ids)
            return False
        return True
