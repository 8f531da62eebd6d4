"""Database models for notifications and notification settings.

Cassandra table definitions for:
- Notifications: per-recipient rows partitioned by user_id
- Notification settings: one row per account, created lazily with defaults

Notification types:
- COMMENT_REPLY: someone replied to the recipient's comment
- NEW_COMMENT: someone commented on a page the recipient follows
- PAGE_UPDATE: someone edited a page the recipient follows

Rendering parameters are typed per notification type and only turned into
a JSON key/value document at the storage boundary.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.core.clock import ensure_utc


# ==============================================================================
# Constants
# ==============================================================================

NOTIFICATION_PREVIEW_MAX_LENGTH = 100

UNKNOWN_USER_NAME = "Someone"
UNKNOWN_PAGE_NAME = "a page"


class NotificationType(str, Enum):
    """Types of notifications."""

    COMMENT_REPLY = "CommentReply"
    NEW_COMMENT = "NewComment"
    PAGE_UPDATE = "PageUpdate"


class EmailFrequency(str, Enum):
    """How often a user receives notification email."""

    IMMEDIATE = "immediate"
    HOURLY = "hourly"
    DAILY = "daily"
    NONE = "none"


# Localization keys per type: (title_key, message_key)
NOTIFICATION_KEYS: dict[NotificationType, tuple[str, str]] = {
    NotificationType.COMMENT_REPLY: (
        "notification.commentReply.title",
        "notification.commentReply.message",
    ),
    NotificationType.NEW_COMMENT: (
        "notification.newComment.title",
        "notification.newComment.message",
    ),
    NotificationType.PAGE_UPDATE: (
        "notification.pageUpdate.title",
        "notification.pageUpdate.message",
    ),
}


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Notifications partitioned by recipient, newest first
NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    created_at TIMESTAMP,
    notification_id UUID,
    type TEXT,
    title_key TEXT,
    message_key TEXT,
    params TEXT,
    title TEXT,
    message TEXT,
    page_id UUID,
    comment_id UUID,
    related_user_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    email_sent BOOLEAN,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

# Index used by the digest scheduler to find unsent rows
NOTIFICATION_EMAIL_SENT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS notifications_email_sent_idx
ON {keyspace}.notifications (email_sent)
"""

NOTIFICATION_SETTINGS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_settings (
    user_id UUID PRIMARY KEY,
    notify_on_comment_reply BOOLEAN,
    notify_on_followed_page_comment BOOLEAN,
    notify_on_followed_page_update BOOLEAN,
    email_frequency TEXT,
    updated_at TIMESTAMP
)
"""

# All table definitions for initialization
NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    NOTIFICATION_EMAIL_SENT_INDEX_CQL,
    NOTIFICATION_SETTINGS_TABLE_CQL,
]


# ==============================================================================
# Rendering Parameters
# ==============================================================================


@dataclass(frozen=True)
class CommentEventParams:
    """Parameters of CommentReply and NewComment notifications."""

    username: str
    page_name: str
    preview: str


@dataclass(frozen=True)
class PageUpdateParams:
    """Parameters of PageUpdate notifications."""

    username: str
    page_name: str


NotificationParams = CommentEventParams | PageUpdateParams


def serialize_params(params: NotificationParams) -> str:
    """Encode parameters as the JSON document stored with the row."""
    data = {"username": params.username, "pageName": params.page_name}
    if isinstance(params, CommentEventParams):
        data["preview"] = params.preview
    return json.dumps(data)


def parse_params(notification_type: NotificationType, raw: str | None) -> NotificationParams:
    """Decode stored parameters into the variant for ``notification_type``."""
    data: dict[str, Any] = json.loads(raw) if raw else {}
    username = data.get("username") or UNKNOWN_USER_NAME
    page_name = data.get("pageName") or UNKNOWN_PAGE_NAME
    if notification_type is NotificationType.PAGE_UPDATE:
        return PageUpdateParams(username=username, page_name=page_name)
    return CommentEventParams(
        username=username, page_name=page_name, preview=data.get("preview") or ""
    )


def truncate_preview(content: str, max_length: int = NOTIFICATION_PREVIEW_MAX_LENGTH) -> str:
    """First ``max_length`` characters, with an ellipsis when cut."""
    if len(content) <= max_length:
        return content
    return content[:max_length] + "..."


def fallback_text(
    notification_type: NotificationType, params: NotificationParams
) -> tuple[str, str]:
    """English title and message used where localized rendering is unavailable."""
    if notification_type is NotificationType.COMMENT_REPLY:
        return (
            "New reply to your comment",
            f"{params.username} replied to your comment on "
            f"'{params.page_name}': {params.preview}",
        )
    if notification_type is NotificationType.NEW_COMMENT:
        return (
            "New comment on followed page",
            f"{params.username} commented on '{params.page_name}': {params.preview}",
        )
    return (
        "Page updated",
        f"{params.username} updated the page '{params.page_name}'",
    )


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class NotificationSettings:
    """Per-account notification preferences."""

    user_id: UUID
    notify_on_comment_reply: bool = True
    notify_on_followed_page_comment: bool = True
    notify_on_followed_page_update: bool = True
    email_frequency: EmailFrequency = EmailFrequency.NONE
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "NotificationSettings":
        """Create NotificationSettings from Cassandra row."""
        return cls(
            user_id=row.user_id,
            notify_on_comment_reply=_flag(row.notify_on_comment_reply),
            notify_on_followed_page_comment=_flag(row.notify_on_followed_page_comment),
            notify_on_followed_page_update=_flag(row.notify_on_followed_page_update),
            email_frequency=_parse_frequency(row.email_frequency),
            updated_at=ensure_utc(row.updated_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": str(self.user_id),
            "notify_on_comment_reply": self.notify_on_comment_reply,
            "notify_on_followed_page_comment": self.notify_on_followed_page_comment,
            "notify_on_followed_page_update": self.notify_on_followed_page_update,
            "email_frequency": self.email_frequency.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class Notification:
    """Notification entity with full details."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title_key: str
    message_key: str
    params: NotificationParams
    title: str
    message: str
    created_at: datetime
    page_id: UUID | None = None
    comment_id: UUID | None = None
    related_user_id: UUID | None = None
    is_read: bool = False
    read_at: datetime | None = None
    email_sent: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        notification_type = NotificationType(row.type)
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=notification_type,
            title_key=row.title_key,
            message_key=row.message_key,
            params=parse_params(notification_type, row.params),
            title=row.title or "",
            message=row.message or "",
            created_at=ensure_utc(row.created_at),
            page_id=row.page_id,
            comment_id=row.comment_id,
            related_user_id=row.related_user_id,
            is_read=row.is_read or False,
            read_at=ensure_utc(row.read_at),
            email_sent=row.email_sent or False,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "notification_id": str(self.notification_id),
            "user_id": str(self.user_id),
            "type": self.type.value,
            "title_key": self.title_key,
            "message_key": self.message_key,
            "params": json.loads(serialize_params(self.params)),
            "title": self.title,
            "message": self.message,
            "page_id": str(self.page_id) if self.page_id else None,
            "comment_id": str(self.comment_id) if self.comment_id else None,
            "related_user_id": str(self.related_user_id) if self.related_user_id else None,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "email_sent": self.email_sent,
            "created_at": self.created_at.isoformat(),
        }


def _flag(value: bool | None) -> bool:
    return True if value is None else value


def _parse_frequency(value: str | None) -> EmailFrequency:
    try:
        return EmailFrequency(value)
    except ValueError:
        return EmailFrequency.NONE


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    params: NotificationParams,
    created_at: datetime,
    page_id: UUID | None = None,
    comment_id: UUID | None = None,
    related_user_id: UUID | None = None,
) -> Notification:
    """Create a new unread, unsent notification."""
    title_key, message_key = NOTIFICATION_KEYS[notification_type]
    title, message = fallback_text(notification_type, params)
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        type=notification_type,
        title_key=title_key,
        message_key=message_key,
        params=params,
        title=title,
        message=message,
        created_at=created_at,
        page_id=page_id,
        comment_id=comment_id,
        related_user_id=related_user_id,
    )
