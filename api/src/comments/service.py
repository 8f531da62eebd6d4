"""Comment service layer.

Business logic for:
- Comment creation: admission, abuse detection and notification fan-out
- Soft delete by author or admin
- Paragraph comment counter reconciliation
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from src.accounts.models import Account, Role
from src.accounts.store import AccountStore
from src.core.clock import Clock
from src.core.logging import get_logger
from src.notifications.fanout import NotificationFanout

from .abuse import AbuseDetector
from .admission import AdmissionGuard, Rejection
from .models import Comment, CommentTarget
from .store import CommentStore


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentNotFoundError(CommentError):
    """Comment not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class PermissionDeniedError(CommentError):
    """Permission denied for operation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


@dataclass(frozen=True)
class CounterReconciliation:
    """Outcome of a paragraph counter recalculation."""

    paragraphs_checked: int
    paragraphs_corrected: int


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment management."""

    def __init__(
        self,
        admission_guard: AdmissionGuard,
        abuse_detector: AbuseDetector,
        fanout: NotificationFanout,
        comment_store: CommentStore,
        account_store: AccountStore,
        clock: Clock,
    ):
        self.admission_guard = admission_guard
        self.abuse_detector = abuse_detector
        self.fanout = fanout
        self.comment_store = comment_store
        self.account_store = account_store
        self.clock = clock

    async def create_comment(
        self,
        author_id: UUID,
        content: str,
        target: CommentTarget,
        origin_ip: str | None,
        parent_id: UUID | None = None,
    ) -> Comment | Rejection:
        """Admit, store and announce a new comment.

        Abuse detection and fan-out run after the comment is stored. Their
        failures are logged and never change the result.

        Raises:
            CommentNotFoundError: If ``parent_id`` does not exist
        """
        if parent_id is not None:
            parent = await self.comment_store.get(parent_id)
            if parent is None or parent.is_deleted:
                raise CommentNotFoundError("Parent comment not found")

        now = self.clock.now()
        result = await self.admission_guard.try_admit(
            author_id=author_id,
            content=content,
            target=target,
            origin_ip=origin_ip,
            now=now,
            parent_id=parent_id,
        )
        if not isinstance(result, Comment):
            return result

        comment = result
        if comment.origin_ip:
            await self._check_abuse(comment, now)

        await self.fanout.on_comment_created(comment)
        return comment

    async def _check_abuse(self, comment: Comment, now: datetime) -> None:
        try:
            author = await self.account_store.get(comment.author_id)
            if author is not None and not author.is_privileged:
                await self.abuse_detector.check_and_freeze(comment.origin_ip, now)
        except Exception:
            logger.exception(
                "abuse_check_failed",
                comment_id=str(comment.comment_id),
                origin_ip=comment.origin_ip,
            )

    async def delete_comment(self, comment_id: UUID, requester: Account) -> Comment:
        """Soft delete a comment. Only its author or an admin may delete it.

        Raises:
            CommentNotFoundError: If comment doesn't exist or is already deleted
            PermissionDeniedError: If requester is neither author nor admin
        """
        comment = await self.comment_store.get(comment_id)
        if comment is None or comment.is_deleted:
            raise CommentNotFoundError

        is_admin = Role.ADMIN in requester.roles
        if comment.author_id != requester.account_id and not is_admin:
            logger.warning(
                "comment_delete_forbidden",
                comment_id=str(comment_id),
                owner_id=str(comment.author_id),
                requester_id=str(requester.account_id),
            )
            raise PermissionDeniedError("Only the author or an admin can delete a comment")

        comment = await self.comment_store.mark_deleted(comment, self.clock.now())
        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            requester_id=str(requester.account_id),
            deletion_type="owner" if comment.author_id == requester.account_id else "admin",
        )
        return comment

    async def recalculate_paragraph_comment_counts(self) -> CounterReconciliation:
        """Recompute paragraph counters from the comments themselves.

        Out-of-band repair tool; the counters are normally maintained by the
        comment write and soft delete.
        """
        actual = await self.comment_store.live_paragraph_counts()
        stored = await self.comment_store.paragraph_counts()

        corrected = 0
        paragraph_ids = actual.keys() | stored.keys()
        for paragraph_id in paragraph_ids:
            delta = actual.get(paragraph_id, 0) - stored.get(paragraph_id, 0)
            if delta:
                await self.comment_store.adjust_paragraph_count(paragraph_id, delta)
                corrected += 1

        logger.info(
            "paragraph_comment_counts_recalculated",
            paragraphs_checked=len(paragraph_ids),
            paragraphs_corrected=corrected,
        )
        return CounterReconciliation(
            paragraphs_checked=len(paragraph_ids), paragraphs_corrected=corrected
        )
