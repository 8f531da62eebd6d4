"""Account state used by comment admission and abuse detection.

Profiles themselves belong to the auth subsystem. This table only carries
the moderation state the comment pipeline reads and writes:
- last_comment_at: throttle watermark, written on every admitted comment
  of a non-privileged author
- frozen_until: temporary posting ban set by the abuse detector or an admin
- is_blocked: permanent ban set by an admin
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.core.clock import ensure_utc


class Role(str, Enum):
    """Roles a profile can hold."""

    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"


PRIVILEGED_ROLES = frozenset({Role.EDITOR, Role.ADMIN})


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ACCOUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.accounts (
    account_id UUID PRIMARY KEY,
    username TEXT,
    email TEXT,
    roles SET<TEXT>,
    last_comment_at TIMESTAMP,
    frozen_until TIMESTAMP,
    is_blocked BOOLEAN,
    created_at TIMESTAMP
)
"""

ACCOUNTS_TABLES_CQL = [
    ACCOUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Account:
    """Profile with its comment moderation state."""

    account_id: UUID
    username: str
    email: str | None = None
    roles: frozenset[Role] = field(default_factory=lambda: frozenset({Role.VIEWER}))
    last_comment_at: datetime | None = None
    frozen_until: datetime | None = None
    is_blocked: bool = False

    @property
    def is_privileged(self) -> bool:
        """Editors and admins bypass throttling and freezes."""
        return bool(self.roles & PRIVILEGED_ROLES)

    def is_frozen(self, now: datetime) -> bool:
        """Check if a freeze is in effect at ``now``."""
        return self.frozen_until is not None and self.frozen_until > now

    @classmethod
    def from_row(cls, row: Any) -> "Account":
        """Create Account from Cassandra row."""
        roles = frozenset(_parse_roles(row.roles or ()))
        return cls(
            account_id=row.account_id,
            username=row.username or "Someone",
            email=row.email,
            roles=roles or frozenset({Role.VIEWER}),
            last_comment_at=ensure_utc(row.last_comment_at),
            frozen_until=ensure_utc(row.frozen_until),
            is_blocked=row.is_blocked or False,
        )


def _parse_roles(values: Any) -> list[Role]:
    roles = []
    for value in values:
        try:
            roles.append(Role(value))
        except ValueError:
            continue
    return roles
