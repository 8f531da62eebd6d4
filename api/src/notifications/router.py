"""Notification settings API routes.

Endpoints for:
- GET /v1/notifications/settings - Read own notification settings
- PUT /v1/notifications/settings - Update own notification settings
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from src.accounts.dependencies import get_current_account_id
from src.core.logging import get_logger
from src.notifications.dependencies import get_settings_store
from src.notifications.schemas import (
    NotificationSettingsResponse,
    UpdateNotificationSettingsRequest,
)
from src.notifications.store import SettingsStore


logger = get_logger(__name__)

router = APIRouter(
    prefix="/v1/notifications",
    tags=["notifications"],
)


@router.get(
    "/settings",
    response_model=NotificationSettingsResponse,
    summary="Get notification settings",
    description="Get notification settings, creating defaults on first access.",
)
async def get_notification_settings(
    account_id: Annotated[UUID, Depends(get_current_account_id)],
    store: Annotated[SettingsStore, Depends(get_settings_store)],
) -> NotificationSettingsResponse:
    """Get the caller's notification settings."""
    settings = await store.get_or_create(account_id)
    return NotificationSettingsResponse.from_settings(settings)


@router.put(
    "/settings",
    response_model=NotificationSettingsResponse,
    summary="Update notification settings",
    description="Update notify flags and email frequency. Omitted fields are kept.",
)
async def update_notification_settings(
    body: UpdateNotificationSettingsRequest,
    account_id: Annotated[UUID, Depends(get_current_account_id)],
    store: Annotated[SettingsStore, Depends(get_settings_store)],
) -> NotificationSettingsResponse:
    """Update the caller's notification settings."""
    settings = body.apply_to(await store.get_or_create(account_id))
    settings = await store.save(settings)
    logger.info(
        "notification_settings_updated",
        account_id=str(account_id),
        email_frequency=settings.email_frequency.value,
    )
    return NotificationSettingsResponse.from_settings(settings)
