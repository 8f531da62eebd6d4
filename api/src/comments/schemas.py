"""Pydantic schemas for comments.

Request/Response models with validation for:
- Comment creation and soft delete
- Admission rejections (frozen, throttled)
- Paragraph counter reconciliation
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Comment, CommentTarget


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(BaseModel):
    """Request to create a new comment on a page or a paragraph."""

    page_id: UUID | None = None
    paragraph_id: UUID | None = None
    parent_id: UUID | None = None
    content: str = Field(..., min_length=1, max_length=10000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Strip whitespace and validate content."""
        v = v.strip()
        if not v:
            msg = "Content cannot be empty"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_target(self) -> "CreateCommentRequest":
        """Exactly one of page_id and paragraph_id."""
        if (self.page_id is None) == (self.paragraph_id is None):
            msg = "Provide exactly one of page_id or paragraph_id"
            raise ValueError(msg)
        return self

    @property
    def target(self) -> CommentTarget:
        return CommentTarget(page_id=self.page_id, paragraph_id=self.paragraph_id)


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(BaseModel):
    """Single comment response."""

    model_config = ConfigDict(from_attributes=True)

    comment_id: UUID
    author_id: UUID
    page_id: UUID | None = None
    paragraph_id: UUID | None = None
    parent_id: UUID | None = None
    content: str
    created_at: datetime
    is_deleted: bool = False
    deleted_at: datetime | None = None

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls.model_validate(comment)


class RejectionResponse(BaseModel):
    """Error body of a refused comment, shaped like every other API error."""

    error: bool = True
    code: str
    message: str
    status_code: int
    request_id: str | None = None


class AccountFrozenResponse(RejectionResponse):
    """Body of a 403 returned to a frozen author."""

    code: str = "account_frozen"
    status_code: int = 403
    frozen_until: datetime
    remaining_seconds: int


class TooManyRequestsResponse(RejectionResponse):
    """Body of a 429 returned to a throttled author."""

    code: str = "too_many_requests"
    status_code: int = 429
    wait_seconds: int


class RecalculateCountsResponse(BaseModel):
    """Result of paragraph counter reconciliation."""

    paragraphs_checked: int
    paragraphs_corrected: int


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
    success: bool = True
