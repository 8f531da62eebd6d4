"""Comment API endpoints.

Provides routes for:
- POST /v1/comments - Create a comment (admission checked)
- DELETE /v1/comments/{comment_id} - Soft delete by author or admin
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import ORJSONResponse

from src.accounts.dependencies import get_current_account, get_current_account_id
from src.accounts.models import Account
from src.core.logging import get_logger

from .admission import AccountFrozen, Rejection, TooManyRequests
from .dependencies import ClientIpDep, CommentServiceDep, handle_comment_error
from .models import Comment
from .schemas import (
    AccountFrozenResponse,
    CommentResponse,
    CreateCommentRequest,
    MessageResponse,
    RejectionResponse,
    TooManyRequestsResponse,
)
from .service import CommentError


logger = get_logger(__name__)


router = APIRouter(prefix="/v1/comments", tags=["comments"])


def rejection_response(rejection: Rejection, request_id: str | None) -> ORJSONResponse:
    """Map an admission rejection to its HTTP response."""
    if isinstance(rejection, AccountFrozen):
        body = AccountFrozenResponse(
            message=(
                "Your account is temporarily frozen. "
                f"Try again in {rejection.remaining_seconds} seconds."
            ),
            request_id=request_id,
            frozen_until=rejection.frozen_until,
            remaining_seconds=rejection.remaining_seconds,
        )
        return ORJSONResponse(
            status_code=status.HTTP_403_FORBIDDEN, content=body.model_dump(mode="json")
        )

    if isinstance(rejection, TooManyRequests):
        body = TooManyRequestsResponse(
            message=(
                "You are commenting too often. "
                f"Please wait {rejection.wait_seconds} seconds."
            ),
            request_id=request_id,
            wait_seconds=rejection.wait_seconds,
        )
        return ORJSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=body.model_dump(mode="json"),
            headers={"Retry-After": str(rejection.wait_seconds)},
        )

    body = RejectionResponse(
        code="unauthorized",
        message="Not allowed to comment",
        status_code=status.HTTP_401_UNAUTHORIZED,
        request_id=request_id,
    )
    return ORJSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED, content=body.model_dump(mode="json")
    )


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": RejectionResponse},
        status.HTTP_403_FORBIDDEN: {"model": AccountFrozenResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": TooManyRequestsResponse},
    },
)
async def create_comment(
    request: Request,
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    client_ip: ClientIpDep,
    author_id: Annotated[UUID, Depends(get_current_account_id)],
) -> CommentResponse | ORJSONResponse:
    """Create a new comment on a page or paragraph.

    Non-privileged authors are limited to one comment per 30 seconds and
    are refused while frozen.
    """
    try:
        result = await comment_service.create_comment(
            author_id=author_id,
            content=data.content,
            target=data.target,
            origin_ip=client_ip,
            parent_id=data.parent_id,
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    if not isinstance(result, Comment):
        return rejection_response(result, getattr(request.state, "request_id", None))
    return CommentResponse.from_comment(result)


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    account: Annotated[Account, Depends(get_current_account)],
) -> MessageResponse:
    """Soft delete a comment. Content is cleared, the row is kept."""
    try:
        await comment_service.delete_comment(comment_id, account)
    except CommentError as e:
        raise handle_comment_error(e) from e

    return MessageResponse(message="Comment deleted")
