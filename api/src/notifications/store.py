# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification and notification settings persistence."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from src.core.clock import Clock, SystemClock

from .models import Notification, NotificationSettings, serialize_params


if TYPE_CHECKING:
    from cassandra.cluster import Session


# ==============================================================================
# Protocols
# ==============================================================================


class NotificationStore(Protocol):
    """Notification rows. ``email_sent`` is only ever set by ``mark_sent``."""

    async def insert_many(self, notifications: Sequence[Notification]) -> None: ...

    async def list_unsent(self, since: datetime | None = None) -> list[Notification]: ...

    async def mark_sent(self, notifications: Sequence[Notification]) -> bool: ...


class SettingsStore(Protocol):
    """Per-account notification preferences."""

    async def get_or_create(self, user_id: UUID) -> NotificationSettings: ...

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, NotificationSettings]: ...

    async def save(self, settings: NotificationSettings) -> NotificationSettings: ...


# ==============================================================================
# Cassandra Implementations
# ==============================================================================


class CassandraNotificationStore:
    """NotificationStore backed by the ``notifications`` table."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, created_at, notification_id, type, title_key, message_key,
             params, title, message, page_id, comment_id, related_user_id,
             is_read, read_at, email_sent)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_unsent = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE email_sent = false
            ALLOW FILTERING
        """)

        self._get_unsent_since = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE email_sent = false AND created_at > ?
            ALLOW FILTERING
        """)

        # Conditional so concurrent schedulers cannot both claim a row
        self._mark_sent = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET email_sent = true
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
            IF email_sent = false
        """)

    def _insert_values(self, notification: Notification) -> list:
        return [
            notification.user_id,
            notification.created_at,
            notification.notification_id,
            notification.type.value,
            notification.title_key,
            notification.message_key,
            serialize_params(notification.params),
            notification.title,
            notification.message,
            notification.page_id,
            notification.comment_id,
            notification.related_user_id,
            notification.is_read,
            notification.read_at,
            notification.email_sent,
        ]

    async def insert_many(self, notifications: Sequence[Notification]) -> None:
        """Write the rows of one fan-out in a single UNLOGGED batch.

        Rows span recipients (partitions), so the batch is not atomic: rows
        applied before a failure stay written.
        """
        if not notifications:
            return

        batch = BatchStatement(batch_type=BatchType.UNLOGGED)
        for notification in notifications:
            batch.add(self._insert_notification, self._insert_values(notification))
        await self.session.aexecute(batch)

    async def list_unsent(self, since: datetime | None = None) -> list[Notification]:
        """Unsent notifications, optionally only those created after ``since``."""
        if since is None:
            rows = await self.session.aexecute(self._get_unsent)
        else:
            rows = await self.session.aexecute(self._get_unsent_since, [since])
        return [Notification.from_row(row) for row in rows]

    async def mark_sent(self, notifications: Sequence[Notification]) -> bool:
        """Mark rows as emailed in one conditional write.

        All rows must belong to the same recipient, since a conditional
        batch is limited to one partition.

        Returns:
            False if any row had already been marked by someone else
        """
        if not notifications:
            return True

        user_ids = {notification.user_id for notification in notifications}
        if len(user_ids) > 1:
            msg = "mark_sent expects notifications of a single recipient"
            raise ValueError(msg)

        if len(notifications) == 1:
            statement = self._mark_sent.bind(_row_key(notifications[0]))
        else:
            statement = BatchStatement(batch_type=BatchType.LOGGED)
            for notification in notifications:
                statement.add(self._mark_sent, _row_key(notification))

        result = await self.session.aexecute(statement)
        applied = bool(result.was_applied)
        if applied:
            for notification in notifications:
                notification.email_sent = True
        return applied


def _row_key(notification: Notification) -> list:
    return [notification.user_id, notification.created_at, notification.notification_id]


class CassandraSettingsStore:
    """SettingsStore backed by the ``notification_settings`` table."""

    def __init__(self, session: "Session", keyspace: str, clock: Clock | None = None):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self.clock = clock or SystemClock()
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_settings = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notification_settings
            WHERE user_id = ?
        """)

        self._get_many_settings = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notification_settings
            WHERE user_id IN ?
        """)

        self._upsert_settings = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notification_settings
            (user_id, notify_on_comment_reply, notify_on_followed_page_comment,
             notify_on_followed_page_update, email_frequency, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._insert_default_settings = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notification_settings
            (user_id, notify_on_comment_reply, notify_on_followed_page_comment,
             notify_on_followed_page_update, email_frequency, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

    async def get_or_create(self, user_id: UUID) -> NotificationSettings:
        """Load settings, creating the default row on first reference."""
        result = await self.session.aexecute(self._get_settings, [user_id])
        row = result.one()
        if row:
            return NotificationSettings.from_row(row)

        settings = NotificationSettings(user_id=user_id, updated_at=self.clock.now())
        await self.session.aexecute(self._insert_default_settings, _settings_values(settings))
        return settings

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, NotificationSettings]:
        """Existing settings rows for ``user_ids``. Missing users are omitted."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        rows = await self.session.aexecute(self._get_many_settings, [ids])
        settings = (NotificationSettings.from_row(row) for row in rows)
        return {item.user_id: item for item in settings}

    async def save(self, settings: NotificationSettings) -> NotificationSettings:
        settings.updated_at = self.clock.now()
        await self.session.aexecute(self._upsert_settings, _settings_values(settings))
        return settings


def _settings_values(settings: NotificationSettings) -> list:
    return [
        settings.user_id,
        settings.notify_on_comment_reply,
        settings.notify_on_followed_page_comment,
        settings.notify_on_followed_page_update,
        settings.email_frequency.value,
        settings.updated_at,
    ]
