"""Notification fan-out for comment and page events.

Turns one event into zero or more per-recipient notification rows, filtered
by each recipient's settings. Called after the triggering write succeeded,
so failures here are logged and never propagate to the caller.
"""

import contextlib
import json
from typing import TYPE_CHECKING
from uuid import UUID

from src.accounts.store import AccountStore
from src.comments.models import Comment
from src.comments.store import CommentStore
from src.core.clock import Clock
from src.core.logging import get_logger
from src.core.redis import notification_channel
from src.pages.directory import PageDirectory

from .models import (
    NOTIFICATION_PREVIEW_MAX_LENGTH,
    UNKNOWN_PAGE_NAME,
    UNKNOWN_USER_NAME,
    CommentEventParams,
    Notification,
    NotificationType,
    PageUpdateParams,
    create_notification,
    truncate_preview,
)
from .store import NotificationStore, SettingsStore


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = get_logger(__name__)


class NotificationFanout:
    """Creates notifications for comment replies, page comments and page edits."""

    def __init__(
        self,
        notification_store: NotificationStore,
        settings_store: SettingsStore,
        account_store: AccountStore,
        comment_store: CommentStore,
        page_directory: PageDirectory,
        clock: Clock,
        redis: "Redis | None" = None,
        preview_length: int = NOTIFICATION_PREVIEW_MAX_LENGTH,
    ):
        self.notification_store = notification_store
        self.settings_store = settings_store
        self.account_store = account_store
        self.comment_store = comment_store
        self.page_directory = page_directory
        self.clock = clock
        self.redis = redis
        self.preview_length = preview_length

    # ==========================================================================
    # Entry Points
    # ==========================================================================

    async def on_comment_created(self, comment: Comment) -> list[Notification]:
        """Notify the replied-to author and the followers of the page.

        Returns:
            Notifications that were written, empty when the write failed
        """
        pending: list[Notification] = []
        try:
            pending = await self._comment_notifications(comment)
            return await self._write_all(pending)
        except Exception:
            logger.exception(
                "comment_fanout_failed",
                comment_id=str(comment.comment_id),
                pending=len(pending),
            )
        return []

    async def on_page_updated(self, page_id: UUID, editor_id: UUID) -> list[Notification]:
        """Notify followers of a page that it was edited.

        Returns:
            Notifications that were written, empty when the write failed
        """
        pending: list[Notification] = []
        try:
            pending = await self._page_update_notifications(page_id, editor_id)
            return await self._write_all(pending)
        except Exception:
            logger.exception(
                "page_update_fanout_failed",
                page_id=str(page_id),
                editor_id=str(editor_id),
                pending=len(pending),
            )
        return []

    # ==========================================================================
    # Recipient Selection
    # ==========================================================================

    async def _comment_notifications(self, comment: Comment) -> list[Notification]:
        username = await self._display_name(comment.author_id)
        page_id = comment.page_id
        if page_id is None and comment.paragraph_id is not None:
            page_id = await self.page_directory.page_for_paragraph(comment.paragraph_id)
        page_name = await self._page_name(page_id)
        params = CommentEventParams(
            username=username,
            page_name=page_name,
            preview=truncate_preview(comment.content, self.preview_length),
        )
        now = self.clock.now()
        pending: list[Notification] = []

        reply_recipient: UUID | None = None
        if comment.parent_id is not None:
            parent = await self.comment_store.get(comment.parent_id)
            if parent is not None and parent.author_id != comment.author_id:
                reply_recipient = parent.author_id
                settings = await self.settings_store.get_or_create(reply_recipient)
                if settings.notify_on_comment_reply:
                    pending.append(
                        create_notification(
                            user_id=reply_recipient,
                            notification_type=NotificationType.COMMENT_REPLY,
                            params=params,
                            created_at=now,
                            page_id=page_id,
                            comment_id=comment.comment_id,
                            related_user_id=comment.author_id,
                        )
                    )

        # Followers are only resolved for comments addressed to a page
        if comment.page_id is not None:
            excluded = {comment.author_id, reply_recipient}
            for follower_id in await self.page_directory.followers_of(comment.page_id):
                if follower_id in excluded:
                    continue
                excluded.add(follower_id)
                settings = await self.settings_store.get_or_create(follower_id)
                if not settings.notify_on_followed_page_comment:
                    continue
                pending.append(
                    create_notification(
                        user_id=follower_id,
                        notification_type=NotificationType.NEW_COMMENT,
                        params=params,
                        created_at=now,
                        page_id=comment.page_id,
                        comment_id=comment.comment_id,
                        related_user_id=comment.author_id,
                    )
                )

        return pending

    async def _page_update_notifications(
        self, page_id: UUID, editor_id: UUID
    ) -> list[Notification]:
        params = PageUpdateParams(
            username=await self._display_name(editor_id),
            page_name=await self._page_name(page_id),
        )
        now = self.clock.now()
        pending: list[Notification] = []

        excluded = {editor_id}
        for follower_id in await self.page_directory.followers_of(page_id):
            if follower_id in excluded:
                continue
            excluded.add(follower_id)
            settings = await self.settings_store.get_or_create(follower_id)
            if not settings.notify_on_followed_page_update:
                continue
            pending.append(
                create_notification(
                    user_id=follower_id,
                    notification_type=NotificationType.PAGE_UPDATE,
                    params=params,
                    created_at=now,
                    page_id=page_id,
                    related_user_id=editor_id,
                )
            )

        return pending

    async def _display_name(self, account_id: UUID) -> str:
        account = await self.account_store.get(account_id)
        if account is None or not account.username:
            return UNKNOWN_USER_NAME
        return account.username

    async def _page_name(self, page_id: UUID | None) -> str:
        if page_id is None:
            return UNKNOWN_PAGE_NAME
        page = await self.page_directory.page_info(page_id)
        if page is None or not page.title:
            return UNKNOWN_PAGE_NAME
        return page.title

    # ==========================================================================
    # Delivery
    # ==========================================================================

    async def _write_all(self, pending: list[Notification]) -> list[Notification]:
        """Write all rows of one event in a single batch, then publish them.

        A failed batch is not rolled back; rows the store applied stay written.
        """
        if not pending:
            return []

        await self.notification_store.insert_many(pending)

        for notification in pending:
            await self._publish_notification(notification)

        logger.info(
            "notifications_created",
            count=len(pending),
            types=sorted({notification.type.value for notification in pending}),
        )
        return pending

    async def _publish_notification(self, notification: Notification) -> None:
        """Publish notification to Redis Pub/Sub for real-time delivery."""
        if not self.redis:
            return

        channel = notification_channel(str(notification.user_id))
        message = {"type": "notification", "data": notification.to_dict()}

        # Non-critical: don't fail fan-out if Redis publish fails
        with contextlib.suppress(Exception):
            await self.redis.publish(channel, json.dumps(message))
