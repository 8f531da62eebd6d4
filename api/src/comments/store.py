# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Comment persistence.

Paragraph comment counters are maintained by the same store operation that
writes or soft-deletes the comment. ``live_paragraph_counts`` and
``adjust_paragraph_count`` exist for the reconciliation tool.
"""

from collections import Counter
from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from .models import Comment


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CommentStore(Protocol):
    """Read/write access to comments and their derived counters."""

    async def insert(self, comment: Comment) -> None: ...

    async def get(self, comment_id: UUID) -> Comment | None: ...

    async def authors_by_ip_since(self, origin_ip: str, since: datetime) -> set[UUID]: ...

    async def mark_deleted(self, comment: Comment, deleted_at: datetime) -> Comment: ...

    async def paragraph_counts(self) -> dict[UUID, int]: ...

    async def live_paragraph_counts(self) -> dict[UUID, int]: ...

    async def adjust_paragraph_count(self, paragraph_id: UUID, delta: int) -> None: ...


class CassandraCommentStore:
    """CommentStore backed by the ``comments_*`` tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id (
                comment_id, author_id, page_id, paragraph_id, parent_id,
                content, origin_ip, created_at, is_deleted
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, false)
        """)

        self._insert_by_ip = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_ip (
                origin_ip, created_at, comment_id, author_id
            ) VALUES (?, ?, ?, ?)
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        self._get_authors_by_ip = self.session.prepare(f"""
            SELECT author_id FROM {self.keyspace}.comments_by_ip
            WHERE origin_ip = ? AND created_at > ?
        """)

        # Content is cleared on soft delete
        self._soft_delete = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET is_deleted = true, deleted_at = ?, content = ''
            WHERE comment_id = ?
        """)

        self._get_paragraph_count = self.session.prepare(f"""
            SELECT comment_count FROM {self.keyspace}.paragraph_comment_counts
            WHERE paragraph_id = ?
        """)

        self._get_paragraph_counts = self.session.prepare(f"""
            SELECT paragraph_id, comment_count
            FROM {self.keyspace}.paragraph_comment_counts
        """)

        self._get_comment_targets = self.session.prepare(f"""
            SELECT paragraph_id, is_deleted FROM {self.keyspace}.comments_by_id
        """)

        self._update_paragraph_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.paragraph_comment_counts
            SET comment_count = comment_count + ?
            WHERE paragraph_id = ?
        """)

    async def insert(self, comment: Comment) -> None:
        """Write the comment and its lookup rows, then bump the paragraph counter."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert_comment,
            [
                comment.comment_id,
                comment.author_id,
                comment.page_id,
                comment.paragraph_id,
                comment.parent_id,
                comment.content,
                comment.origin_ip,
                comment.created_at,
            ],
        )
        if comment.origin_ip:
            batch.add(
                self._insert_by_ip,
                [
                    comment.origin_ip,
                    comment.created_at,
                    comment.comment_id,
                    comment.author_id,
                ],
            )
        await self.session.aexecute(batch)

        # Counter tables cannot share a batch with regular tables
        if comment.paragraph_id is not None:
            await self.session.aexecute(
                self._update_paragraph_count, [1, comment.paragraph_id]
            )

    async def get(self, comment_id: UUID) -> Comment | None:
        result = await self.session.aexecute(self._get_comment, [comment_id])
        row = result.one()
        return Comment.from_row(row) if row else None

    async def authors_by_ip_since(self, origin_ip: str, since: datetime) -> set[UUID]:
        rows = await self.session.aexecute(self._get_authors_by_ip, [origin_ip, since])
        return {row.author_id for row in rows}

    async def mark_deleted(self, comment: Comment, deleted_at: datetime) -> Comment:
        """Soft delete a comment and decrement its paragraph counter."""
        await self.session.aexecute(self._soft_delete, [deleted_at, comment.comment_id])

        if comment.paragraph_id is not None:
            result = await self.session.aexecute(
                self._get_paragraph_count, [comment.paragraph_id]
            )
            row = result.one()
            if row and (row.comment_count or 0) > 0:
                await self.session.aexecute(
                    self._update_paragraph_count, [-1, comment.paragraph_id]
                )

        comment.is_deleted = True
        comment.deleted_at = deleted_at
        comment.content = ""
        return comment

    async def paragraph_counts(self) -> dict[UUID, int]:
        rows = await self.session.aexecute(self._get_paragraph_counts)
        return {row.paragraph_id: row.comment_count or 0 for row in rows}

    async def live_paragraph_counts(self) -> dict[UUID, int]:
        """Count non-deleted comments per paragraph from the source rows."""
        rows = await self.session.aexecute(self._get_comment_targets)
        return dict(
            Counter(
                row.paragraph_id
                for row in rows
                if row.paragraph_id is not None and not row.is_deleted
            )
        )

    async def adjust_paragraph_count(self, paragraph_id: UUID, delta: int) -> None:
        await self.session.aexecute(self._update_paragraph_count, [delta, paragraph_id])
