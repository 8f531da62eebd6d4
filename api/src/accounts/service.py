"""Moderator operations on account posting state."""

from datetime import datetime
from uuid import UUID

from src.core.logging import get_logger

from .models import Account
from .store import AccountStore


logger = get_logger(__name__)


class AccountNotFoundError(Exception):
    """Account does not exist."""

    def __init__(self, account_id: UUID):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class AccountModerationService:
    """Manual freeze and block controls, used by the admin console."""

    def __init__(self, account_store: AccountStore):
        self.account_store = account_store

    async def _require(self, account_id: UUID) -> Account:
        account = await self.account_store.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def freeze(
        self, account_id: UUID, until: datetime, moderator_id: UUID | None = None
    ) -> Account:
        """Freeze an account until the given instant."""
        account = await self._require(account_id)
        await self.account_store.set_frozen_until(account_id, until)
        account.frozen_until = until
        logger.info(
            "account_frozen_by_moderator",
            account_id=str(account_id),
            frozen_until=until.isoformat(),
            moderator_id=str(moderator_id) if moderator_id else None,
        )
        return account

    async def unfreeze(self, account_id: UUID, moderator_id: UUID | None = None) -> Account:
        """Lift any freeze on an account."""
        account = await self._require(account_id)
        await self.account_store.set_frozen_until(account_id, None)
        account.frozen_until = None
        logger.info(
            "account_unfrozen_by_moderator",
            account_id=str(account_id),
            moderator_id=str(moderator_id) if moderator_id else None,
        )
        return account

    async def set_blocked(
        self, account_id: UUID, blocked: bool, moderator_id: UUID | None = None
    ) -> Account:
        """Permanently block an account from commenting, or lift the block."""
        account = await self._require(account_id)
        await self.account_store.set_blocked(account_id, blocked)
        account.is_blocked = blocked
        logger.info(
            "account_blocked_by_moderator" if blocked else "account_unblocked_by_moderator",
            account_id=str(account_id),
            moderator_id=str(moderator_id) if moderator_id else None,
        )
        return account
