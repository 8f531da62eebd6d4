"""Multi-account abuse detection by origin IP."""

from datetime import datetime, timedelta
from uuid import UUID

from src.accounts.store import AccountStore
from src.core.logging import get_logger

from .store import CommentStore


logger = get_logger(__name__)


class AbuseDetector:
    """Freezes accounts when too many of them post from one address.

    Every distinct author seen on the address inside the window counts
    toward the threshold, including accounts that are already frozen.
    Re-running extends freezes to ``now + freeze_duration``.
    """

    def __init__(
        self,
        account_store: AccountStore,
        comment_store: CommentStore,
        window_seconds: int = 30,
        distinct_accounts_threshold: int = 3,
        freeze_hours: int = 24,
    ):
        self.account_store = account_store
        self.comment_store = comment_store
        self.window = timedelta(seconds=window_seconds)
        self.threshold = distinct_accounts_threshold
        self.freeze_duration = timedelta(hours=freeze_hours)

    async def check_and_freeze(self, origin_ip: str, now: datetime) -> list[UUID]:
        """Freeze the non-privileged authors behind a burst from ``origin_ip``.

        Returns:
            Ids of the accounts that were frozen (empty when under threshold)
        """
        if not origin_ip:
            return []

        author_ids = await self.comment_store.authors_by_ip_since(
            origin_ip, now - self.window
        )
        if len(author_ids) < self.threshold:
            return []

        accounts = await self.account_store.get_many(author_ids)
        frozen_until = now + self.freeze_duration
        frozen: list[UUID] = []
        for account_id in sorted(author_ids):
            account = accounts.get(account_id)
            if account is None or account.is_privileged:
                continue
            await self.account_store.set_frozen_until(account_id, frozen_until)
            frozen.append(account_id)

        logger.warning(
            "ip_abuse_detected",
            origin_ip=origin_ip,
            distinct_accounts=len(author_ids),
            frozen_accounts=[str(account_id) for account_id in frozen],
            frozen_until=frozen_until.isoformat(),
        )
        return frozen
