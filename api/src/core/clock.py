"""Time sources for services and background workers.

Services never call ``datetime.now`` directly; they receive a ``Clock`` so
tests can pin or advance time. Background loops wait through a ``Ticker``,
which lets tests drive many ticks without real sleeping.
"""

import asyncio
import contextlib
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current UTC instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class Ticker(Protocol):
    """Waits between iterations of a polling loop."""

    async def wait(self, seconds: float, stop_event: asyncio.Event) -> None:
        """Wait ``seconds`` or until ``stop_event`` is set, whichever is first."""
        ...


class AsyncioTicker:
    """Ticker backed by the event loop timer."""

    async def wait(self, seconds: float, stop_event: asyncio.Event) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from Cassandra."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
