"""Dependencies for notification routes."""

from fastapi import Request

from src.notifications.store import SettingsStore


def get_settings_store(request: Request) -> SettingsStore:
    """Get SettingsStore from app.state."""
    if hasattr(request.app.state, "settings_store"):
        return request.app.state.settings_store

    msg = "SettingsStore not configured"
    raise RuntimeError(msg)
