"""Comment admission: freeze and throttle checks before a comment is stored.

Rejections are returned as values. They are expected user-facing outcomes
and carry what the caller needs to tell the author how long to wait.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from src.accounts.store import AccountStore
from src.core.logging import get_logger

from .models import Comment, CommentTarget, create_comment
from .store import CommentStore


logger = get_logger(__name__)


DEFAULT_THROTTLE_SECONDS = 30


# ==============================================================================
# Rejections
# ==============================================================================


@dataclass(frozen=True)
class Unauthorized:
    """Unknown or blocked account."""

    reason: str = "unknown_account"


@dataclass(frozen=True)
class AccountFrozen:
    """Account is frozen; posting resumes at ``frozen_until``."""

    frozen_until: datetime
    remaining_seconds: int


@dataclass(frozen=True)
class TooManyRequests:
    """Author commented too recently."""

    wait_seconds: int


Rejection = Unauthorized | AccountFrozen | TooManyRequests


def _ceil_seconds(delta: timedelta) -> int:
    return max(0, math.ceil(delta.total_seconds()))


# ==============================================================================
# Admission Guard
# ==============================================================================


class AdmissionGuard:
    """Decides whether a new comment may be persisted."""

    def __init__(
        self,
        account_store: AccountStore,
        comment_store: CommentStore,
        throttle_seconds: int = DEFAULT_THROTTLE_SECONDS,
    ):
        self.account_store = account_store
        self.comment_store = comment_store
        self.throttle = timedelta(seconds=throttle_seconds)

    async def try_admit(
        self,
        author_id: UUID,
        content: str,
        target: CommentTarget,
        origin_ip: str | None,
        now: datetime,
        parent_id: UUID | None = None,
    ) -> Comment | Rejection:
        """Admit and persist a comment, or return why it was rejected.

        Editors and admins skip the freeze and throttle checks and never
        accrue throttle state.
        """
        account = await self.account_store.get(author_id)
        if account is None:
            logger.info("comment_rejected_unknown_account", author_id=str(author_id))
            return Unauthorized()

        if account.is_blocked:
            logger.warning("comment_rejected_blocked", author_id=str(author_id))
            return Unauthorized(reason="blocked")

        if not account.is_privileged:
            if account.is_frozen(now):
                remaining = _ceil_seconds(account.frozen_until - now)
                logger.warning(
                    "comment_rejected_frozen",
                    author_id=str(author_id),
                    frozen_until=account.frozen_until.isoformat(),
                    remaining_seconds=remaining,
                )
                return AccountFrozen(
                    frozen_until=account.frozen_until, remaining_seconds=remaining
                )

            if account.last_comment_at is not None:
                elapsed = now - account.last_comment_at
                if elapsed < self.throttle:
                    wait = _ceil_seconds(self.throttle - elapsed)
                    logger.info(
                        "comment_rejected_throttled",
                        author_id=str(author_id),
                        wait_seconds=wait,
                    )
                    return TooManyRequests(wait_seconds=wait)

        comment = create_comment(
            author_id=author_id,
            content=content,
            target=target,
            created_at=now,
            parent_id=parent_id,
            origin_ip=origin_ip,
        )
        await self.comment_store.insert(comment)

        if not account.is_privileged:
            await self.account_store.set_last_comment_at(author_id, now)

        logger.info(
            "comment_admitted",
            comment_id=str(comment.comment_id),
            author_id=str(author_id),
            page_id=str(comment.page_id) if comment.page_id else None,
            paragraph_id=str(comment.paragraph_id) if comment.paragraph_id else None,
            privileged=account.is_privileged,
        )
        return comment
