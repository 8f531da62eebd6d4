"""Page lookups used for notification display and follower fan-out."""

from .directory import PAGES_TABLES_CQL, CassandraPageDirectory, PageDirectory, PageInfo


__all__ = [
    "PAGES_TABLES_CQL",
    "CassandraPageDirectory",
    "PageDirectory",
    "PageInfo",
]
