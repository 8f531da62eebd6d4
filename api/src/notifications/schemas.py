"""Pydantic schemas for notification settings."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.notifications.models import EmailFrequency, NotificationSettings


class NotificationSettingsResponse(BaseModel):
    """Current notification preferences of an account."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Account ID")
    notify_on_comment_reply: bool = Field(description="Email/notify on replies")
    notify_on_followed_page_comment: bool = Field(
        description="Notify on comments on followed pages"
    )
    notify_on_followed_page_update: bool = Field(
        description="Notify on edits of followed pages"
    )
    email_frequency: EmailFrequency = Field(description="Email cadence")
    updated_at: datetime | None = Field(None, description="Last change")

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "NotificationSettingsResponse":
        return cls.model_validate(settings)


class UpdateNotificationSettingsRequest(BaseModel):
    """Partial update of notification preferences. Omitted fields are kept."""

    notify_on_comment_reply: bool | None = None
    notify_on_followed_page_comment: bool | None = None
    notify_on_followed_page_update: bool | None = None
    email_frequency: EmailFrequency | None = None

    def apply_to(self, settings: NotificationSettings) -> NotificationSettings:
        for name, value in self.model_dump(exclude_none=True).items():
            setattr(settings, name, value)
        return settings
