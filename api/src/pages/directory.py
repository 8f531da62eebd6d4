# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Read-only view of pages and their followers.

Pages, paragraphs and follows are edited by the page management subsystem.
The comment pipeline only needs to resolve titles, links and followers.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID


if TYPE_CHECKING:
    from cassandra.cluster import Session


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PAGE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.pages (
    page_id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    chapter_slug TEXT
)
"""

PARAGRAPH_PAGE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.paragraph_pages (
    paragraph_id UUID PRIMARY KEY,
    page_id UUID
)
"""

# Followers partitioned by page for fan-out
PAGE_FOLLOWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.page_follows (
    page_id UUID,
    user_id UUID,
    followed_at TIMESTAMP,
    PRIMARY KEY ((page_id), user_id)
)
"""

PAGES_TABLES_CQL = [
    PAGE_TABLE_CQL,
    PARAGRAPH_PAGE_TABLE_CQL,
    PAGE_FOLLOWS_TABLE_CQL,
]


@dataclass(frozen=True)
class PageInfo:
    """Display data for a page."""

    page_id: UUID
    title: str
    slug: str
    chapter_slug: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "PageInfo":
        """Create PageInfo from Cassandra row."""
        return cls(
            page_id=row.page_id,
            title=row.title or "",
            slug=row.slug or "",
            chapter_slug=row.chapter_slug,
        )

    def url(self, base_url: str) -> str:
        """Public link to the page."""
        base = base_url.rstrip("/")
        if self.chapter_slug:
            return f"{base}/{self.chapter_slug}/{self.slug}"
        return f"{base}/{self.slug}"


class PageDirectory(Protocol):
    """Page lookups owned by the page management subsystem."""

    async def followers_of(self, page_id: UUID) -> list[UUID]: ...

    async def page_info(self, page_id: UUID) -> PageInfo | None: ...

    async def page_for_paragraph(self, paragraph_id: UUID) -> UUID | None: ...


class CassandraPageDirectory:
    """PageDirectory reading the page management tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_followers = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.page_follows
            WHERE page_id = ?
        """)

        self._get_page = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.pages
            WHERE page_id = ?
        """)

        self._get_paragraph_page = self.session.prepare(f"""
            SELECT page_id FROM {self.keyspace}.paragraph_pages
            WHERE paragraph_id = ?
        """)

    async def followers_of(self, page_id: UUID) -> list[UUID]:
        rows = await self.session.aexecute(self._get_followers, [page_id])
        return [row.user_id for row in rows]

    async def page_info(self, page_id: UUID) -> PageInfo | None:
        result = await self.session.aexecute(self._get_page, [page_id])
        row = result.one()
        return PageInfo.from_row(row) if row else None

    async def page_for_paragraph(self, paragraph_id: UUID) -> UUID | None:
        result = await self.session.aexecute(self._get_paragraph_page, [paragraph_id])
        row = result.one()
        return row.page_id if row else None
