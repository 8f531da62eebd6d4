"""Page event endpoints called by the page editor.

- POST /v1/pages/{page_id}/updated - Notify followers of an edit
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from src.accounts.dependencies import get_current_account
from src.accounts.models import Account
from src.notifications.fanout import NotificationFanout


router = APIRouter(prefix="/v1/pages", tags=["pages"])


class PageUpdatedResponse(BaseModel):
    notifications_created: int


def get_fanout(request: Request) -> NotificationFanout:
    """Get NotificationFanout from app.state."""
    fanout = getattr(request.app.state, "fanout", None)
    if fanout is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification fan-out not available",
        )
    return fanout


@router.post(
    "/{page_id}/updated",
    response_model=PageUpdatedResponse,
    summary="Announce page edit",
)
async def page_updated(
    page_id: UUID,
    account: Annotated[Account, Depends(get_current_account)],
    fanout: Annotated[NotificationFanout, Depends(get_fanout)],
) -> PageUpdatedResponse:
    """Create PageUpdate notifications for the page's followers.

    Only editors and admins edit pages, so only they may announce edits.
    """
    if not account.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "permission_denied", "message": "Editor role required"},
        )
    written = await fanout.on_page_updated(page_id, account.account_id)
    return PageUpdatedResponse(notifications_created=len(written))
