# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Account state persistence."""

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import Account


if TYPE_CHECKING:
    from cassandra.cluster import Session


class AccountStore(Protocol):
    """Read/write access to account moderation state."""

    async def get(self, account_id: UUID) -> Account | None: ...

    async def get_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]: ...

    async def set_last_comment_at(self, account_id: UUID, when: datetime) -> None: ...

    async def set_frozen_until(
        self, account_id: UUID, until: datetime | None
    ) -> None: ...

    async def set_blocked(self, account_id: UUID, blocked: bool) -> None: ...


class CassandraAccountStore:
    """AccountStore backed by the ``accounts`` table."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_account = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.accounts
            WHERE account_id = ?
        """)

        self._get_accounts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.accounts
            WHERE account_id IN ?
        """)

        # Single-column updates so concurrent throttle and freeze writes
        # never clobber each other
        self._update_last_comment_at = self.session.prepare(f"""
            UPDATE {self.keyspace}.accounts
            SET last_comment_at = ?
            WHERE account_id = ?
        """)

        self._update_frozen_until = self.session.prepare(f"""
            UPDATE {self.keyspace}.accounts
            SET frozen_until = ?
            WHERE account_id = ?
        """)

        self._update_blocked = self.session.prepare(f"""
            UPDATE {self.keyspace}.accounts
            SET is_blocked = ?
            WHERE account_id = ?
        """)

    async def get(self, account_id: UUID) -> Account | None:
        result = await self.session.aexecute(self._get_account, [account_id])
        row = result.one()
        return Account.from_row(row) if row else None

    async def get_many(self, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return {}
        rows = await self.session.aexecute(self._get_accounts, [ids])
        accounts = (Account.from_row(row) for row in rows)
        return {account.account_id: account for account in accounts}

    async def set_last_comment_at(self, account_id: UUID, when: datetime) -> None:
        await self.session.aexecute(self._update_last_comment_at, [when, account_id])

    async def set_frozen_until(self, account_id: UUID, until: datetime | None) -> None:
        await self.session.aexecute(self._update_frozen_until, [until, account_id])

    async def set_blocked(self, account_id: UUID, blocked: bool) -> None:
        await self.session.aexecute(self._update_blocked, [blocked, account_id])
