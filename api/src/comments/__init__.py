"""Comment module.

Provides page and paragraph comments with:
- Admission checks (freeze, throttle)
- Multi-account abuse detection by origin IP
- Soft delete and paragraph comment counters

Note: Service and router are not exported here to avoid circular imports.
Import directly from src.comments.service / src.comments.router when needed.
"""

from .abuse import AbuseDetector
from .admission import (
    AccountFrozen,
    AdmissionGuard,
    Rejection,
    TooManyRequests,
    Unauthorized,
)
from .ip import client_ipv4
from .models import COMMENTS_TABLES_CQL, Comment, CommentTarget, create_comment
from .store import CassandraCommentStore, CommentStore


__all__ = [
    "COMMENTS_TABLES_CQL",
    "AbuseDetector",
    "AccountFrozen",
    "AdmissionGuard",
    "CassandraCommentStore",
    "Comment",
    "CommentStore",
    "CommentTarget",
    "Rejection",
    "TooManyRequests",
    "Unauthorized",
    "client_ipv4",
    "create_comment",
]
