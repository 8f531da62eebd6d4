"""Dependencies resolving the calling account.

Authentication belongs to the host application. It registers a getter that
maps a request to an account id via ``set_current_account_getter``.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.core.context import set_user_id

from .models import Account, Role
from .service import AccountModerationService
from .store import AccountStore


AccountIdGetter = Callable[[Request], Awaitable[UUID | None]]

# Identity getter (set by the host application)
_current_account_getter: AccountIdGetter | None = None


def set_current_account_getter(getter: AccountIdGetter | None) -> None:
    """Set the function resolving the caller's account id."""
    global _current_account_getter  # noqa: PLW0603 - Required for DI pattern
    _current_account_getter = getter


def get_account_store(request: Request) -> AccountStore:
    """Get AccountStore from app.state."""
    if hasattr(request.app.state, "account_store"):
        return request.app.state.account_store

    msg = "AccountStore not configured"
    raise RuntimeError(msg)


def get_moderation_service(request: Request) -> AccountModerationService:
    """Get AccountModerationService from app.state."""
    if hasattr(request.app.state, "moderation_service"):
        return request.app.state.moderation_service

    msg = "AccountModerationService not configured"
    raise RuntimeError(msg)


async def get_current_account_id(request: Request) -> UUID:
    """Resolve the caller's account id or reject with 401."""
    account_id = None
    if _current_account_getter is not None:
        account_id = await _current_account_getter(request)

    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": "Authentication required"},
        )

    set_user_id(str(account_id))
    return account_id


async def get_current_account(
    account_id: Annotated[UUID, Depends(get_current_account_id)],
    account_store: Annotated[AccountStore, Depends(get_account_store)],
) -> Account:
    """Load the caller's account; unknown accounts are unauthorized."""
    account = await account_store.get(account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": "Unknown account"},
        )
    return account


async def require_admin(
    account: Annotated[Account, Depends(get_current_account)],
) -> Account:
    """Allow only admin accounts."""
    if Role.ADMIN not in account.roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "permission_denied", "message": "Admin role required"},
        )
    return account
