# Core infrastructure
from src.core.clock import AsyncioTicker, Clock, SystemClock, Ticker, ensure_utc
from src.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)
from src.core.logging import configure_structlog, get_logger


__all__ = [
    "AsyncioTicker",
    "Clock",
    "SystemClock",
    "Ticker",
    "clear_context",
    "configure_structlog",
    "ensure_utc",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "set_user_id",
]
