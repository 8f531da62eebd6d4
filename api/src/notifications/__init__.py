"""Notifications module.

Provides:
- Notification rows for comment replies, page comments and page edits
- Per-account notification settings with lazy defaults
- Fan-out of events into notifications (src.notifications.fanout)
- Email digest scheduler (src.notifications.scheduler)

Note: fan-out, scheduler and router are imported directly to avoid
circular imports.
"""

from src.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    CommentEventParams,
    EmailFrequency,
    Notification,
    NotificationParams,
    NotificationSettings,
    NotificationType,
    PageUpdateParams,
)
from src.notifications.store import (
    CassandraNotificationStore,
    CassandraSettingsStore,
    NotificationStore,
    SettingsStore,
)


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "CassandraNotificationStore",
    "CassandraSettingsStore",
    "CommentEventParams",
    "EmailFrequency",
    "Notification",
    "NotificationParams",
    "NotificationSettings",
    "NotificationStore",
    "NotificationType",
    "PageUpdateParams",
    "SettingsStore",
]
