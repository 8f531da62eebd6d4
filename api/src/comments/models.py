"""Database models for page and paragraph comments.

Cassandra table definitions for:
- Comments by ID: canonical comment row, soft delete in place
- Comments by IP: recent comments per origin address for abuse detection
- Paragraph comment counts: derived counter per paragraph

A comment targets either a page or a paragraph. Paragraph comments roll up
to their page for display but are addressed by paragraph_id.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.core.clock import ensure_utc


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    author_id UUID,
    page_id UUID,
    paragraph_id UUID,
    parent_id UUID,
    content TEXT,
    origin_ip TEXT,
    created_at TIMESTAMP,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP
)
"""

# Partition by origin address, newest first, for the abuse window query.
# Rows only matter for a few seconds so they expire after a day.
COMMENTS_BY_IP_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_ip (
    origin_ip TEXT,
    created_at TIMESTAMP,
    comment_id UUID,
    author_id UUID,
    PRIMARY KEY ((origin_ip), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
  AND default_time_to_live = 86400
"""

PARAGRAPH_COMMENT_COUNTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.paragraph_comment_counts (
    paragraph_id UUID PRIMARY KEY,
    comment_count COUNTER
)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENTS_BY_IP_TABLE_CQL,
    PARAGRAPH_COMMENT_COUNTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class CommentTarget:
    """What a comment is attached to: a page or a single paragraph."""

    page_id: UUID | None = None
    paragraph_id: UUID | None = None

    def __post_init__(self) -> None:
        if (self.page_id is None) == (self.paragraph_id is None):
            msg = "Comment target must be exactly one of page_id or paragraph_id"
            raise ValueError(msg)

    @classmethod
    def page(cls, page_id: UUID) -> "CommentTarget":
        return cls(page_id=page_id)

    @classmethod
    def paragraph(cls, paragraph_id: UUID) -> "CommentTarget":
        return cls(paragraph_id=paragraph_id)


@dataclass
class Comment:
    """Comment entity."""

    comment_id: UUID
    author_id: UUID
    content: str
    created_at: datetime
    page_id: UUID | None = None
    paragraph_id: UUID | None = None
    parent_id: UUID | None = None
    origin_ip: str | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None

    @property
    def target(self) -> CommentTarget:
        if self.paragraph_id is not None:
            return CommentTarget.paragraph(self.paragraph_id)
        return CommentTarget(page_id=self.page_id)

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            author_id=row.author_id,
            content=row.content or "",
            created_at=ensure_utc(row.created_at),
            page_id=row.page_id,
            paragraph_id=row.paragraph_id,
            parent_id=row.parent_id,
            origin_ip=row.origin_ip,
            is_deleted=row.is_deleted or False,
            deleted_at=ensure_utc(row.deleted_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "comment_id": str(self.comment_id),
            "author_id": str(self.author_id),
            "page_id": str(self.page_id) if self.page_id else None,
            "paragraph_id": str(self.paragraph_id) if self.paragraph_id else None,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "is_deleted": self.is_deleted,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    author_id: UUID,
    content: str,
    target: CommentTarget,
    created_at: datetime,
    parent_id: UUID | None = None,
    origin_ip: str | None = None,
) -> Comment:
    """Create a new comment with default values."""
    return Comment(
        comment_id=uuid4(),
        author_id=author_id,
        content=content,
        created_at=created_at,
        page_id=target.page_id,
        paragraph_id=target.paragraph_id,
        parent_id=parent_id,
        origin_ip=origin_ip,
    )
