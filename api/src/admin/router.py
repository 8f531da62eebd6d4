"""Admin API routes for comment moderation.

Endpoints for (ADMIN ONLY):
- POST /v1/admin/accounts/{account_id}/freeze - Freeze until a given instant
- POST /v1/admin/accounts/{account_id}/unfreeze - Lift a freeze
- POST /v1/admin/accounts/{account_id}/block - Block from commenting
- POST /v1/admin/accounts/{account_id}/unblock - Lift a block
- POST /v1/admin/paragraphs/recalculate-comment-counts - Repair counters
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from src.accounts.dependencies import get_moderation_service, require_admin
from src.accounts.models import Account
from src.accounts.schemas import AccountModerationResponse, FreezeAccountRequest
from src.accounts.service import AccountModerationService, AccountNotFoundError
from src.comments.dependencies import CommentServiceDep
from src.comments.schemas import RecalculateCountsResponse


AdminAccount = Annotated[Account, Depends(require_admin)]
ModerationServiceDep = Annotated[
    AccountModerationService, Depends(get_moderation_service)
]


router = APIRouter(
    prefix="/v1/admin",
    tags=["admin"],
)


def _not_found(error: AccountNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "account_not_found", "message": str(error)},
    )


@router.post(
    "/accounts/{account_id}/freeze",
    response_model=AccountModerationResponse,
    summary="Freeze account",
    description="Prevent a non-privileged account from commenting until a given instant.",
)
async def freeze_account(
    account_id: UUID,
    body: FreezeAccountRequest,
    admin: AdminAccount,
    service: ModerationServiceDep,
) -> AccountModerationResponse:
    """Freeze an account."""
    try:
        account = await service.freeze(account_id, body.freeze_until, admin.account_id)
    except AccountNotFoundError as e:
        raise _not_found(e) from e
    return AccountModerationResponse.from_account(account)


@router.post(
    "/accounts/{account_id}/unfreeze",
    response_model=AccountModerationResponse,
    summary="Unfreeze account",
)
async def unfreeze_account(
    account_id: UUID,
    admin: AdminAccount,
    service: ModerationServiceDep,
) -> AccountModerationResponse:
    """Lift a freeze."""
    try:
        account = await service.unfreeze(account_id, admin.account_id)
    except AccountNotFoundError as e:
        raise _not_found(e) from e
    return AccountModerationResponse.from_account(account)


@router.post(
    "/accounts/{account_id}/block",
    response_model=AccountModerationResponse,
    summary="Block account",
)
async def block_account(
    account_id: UUID,
    admin: AdminAccount,
    service: ModerationServiceDep,
) -> AccountModerationResponse:
    """Block an account from commenting."""
    try:
        account = await service.set_blocked(account_id, True, admin.account_id)
    except AccountNotFoundError as e:
        raise _not_found(e) from e
    return AccountModerationResponse.from_account(account)


@router.post(
    "/accounts/{account_id}/unblock",
    response_model=AccountModerationResponse,
    summary="Unblock account",
)
async def unblock_account(
    account_id: UUID,
    admin: AdminAccount,
    service: ModerationServiceDep,
) -> AccountModerationResponse:
    """Lift a block."""
    try:
        account = await service.set_blocked(account_id, False, admin.account_id)
    except AccountNotFoundError as e:
        raise _not_found(e) from e
    return AccountModerationResponse.from_account(account)


@router.post(
    "/paragraphs/recalculate-comment-counts",
    response_model=RecalculateCountsResponse,
    summary="Recalculate paragraph comment counts",
    description="Recompute every paragraph counter from the stored comments.",
)
async def recalculate_comment_counts(
    _admin: AdminAccount,
    comment_service: CommentServiceDep,
) -> RecalculateCountsResponse:
    """Repair paragraph comment counters."""
    result = await comment_service.recalculate_paragraph_comment_counts()
    return RecalculateCountsResponse(
        paragraphs_checked=result.paragraphs_checked,
        paragraphs_corrected=result.paragraphs_corrected,
    )
