# gifttt/core/clock.py
"""
Clock — async background task publishing the wall-clock time as variables.

Every interval it writes

    time:second  time:minute  time:hour  date:day  date:month  date:year

Each write goes through VariableManager.set on its own, so an unchanged
field is suppressed and each changed field publishes its own event.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from .variables import VariableManager

_logger = logging.getLogger("gifttt.core.clock")

CLOCK_VARIABLES = (
    "time:second",
    "time:minute",
    "time:hour",
    "date:day",
    "date:month",
    "date:year",
)


def clock_values(now: datetime) -> Dict[str, int]:
    return {
        "time:second": now.second,
        "time:minute": now.minute,
        "time:hour": now.hour,
        "date:day": now.day,
        "date:month": now.month,
        "date:year": now.year,
    }


class Clock:
    """Periodically writes the current time and date into variables."""

    def __init__(
        self,
        variables: VariableManager,
        *,
        interval: float = 1.0,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.variables = variables
        self.interval = interval
        self._now = now or datetime.now
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._tick_count: int = 0

    @property
    def tick_count(self) -> int:
        return self._tick_count

    async def start(self) -> None:
        """Start the clock loop."""
        if self._running:
            _logger.debug("Clock already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="gifttt-clock")
        _logger.info("Clock started (interval=%.2fs)", self.interval)

    async def stop(self) -> None:
        """Stop the clock loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        _logger.info("Clock stopped")

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _logger.warning("Clock tick failed: %s", e)

    async def tick(self) -> None:
        """Write all six clock variables once."""
        for name, value in clock_values(self._now()).items():
            await self.variables.set(name, value)
        self._tick_count += 1
        _logger.debug("Clock tick #%d complete", self._tick_count)
