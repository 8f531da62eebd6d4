"""Account moderation state (throttle, freeze, block).

Note: Dependencies are imported directly from src.accounts.dependencies.
"""

from .models import ACCOUNTS_TABLES_CQL, PRIVILEGED_ROLES, Account, Role
from .service import AccountModerationService, AccountNotFoundError
from .store import AccountStore, CassandraAccountStore


__all__ = [
    "ACCOUNTS_TABLES_CQL",
    "PRIVILEGED_ROLES",
    "Account",
    "AccountModerationService",
    "AccountNotFoundError",
    "AccountStore",
    "CassandraAccountStore",
    "Role",
]
