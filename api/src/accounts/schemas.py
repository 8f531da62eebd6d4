"""Pydantic schemas for account moderation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Account


class FreezeAccountRequest(BaseModel):
    """Freeze an account until ``freeze_until`` (UTC)."""

    freeze_until: datetime = Field(description="Instant the freeze ends")

    @field_validator("freeze_until")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            msg = "freeze_until must include a timezone"
            raise ValueError(msg)
        return v


class AccountModerationResponse(BaseModel):
    """Moderation state of an account."""

    model_config = ConfigDict(from_attributes=True)

    account_id: UUID
    username: str
    frozen_until: datetime | None = None
    is_blocked: bool = False

    @classmethod
    def from_account(cls, account: Account) -> "AccountModerationResponse":
        return cls.model_validate(account)
