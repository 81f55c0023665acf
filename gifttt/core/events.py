import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Tuple


@dataclass(frozen=True)
class ChangeEvent:
    """A variable took a new value."""
    name: str
    value: Any


class UpdateChannel:
    """Unbuffered async hand-off of change events.

    ``send`` returns only once a receiver has taken the event, so at most
    one event is ever outstanding and writers cannot run ahead of the
    dispatch loop.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Tuple[ChangeEvent, asyncio.Future]]" = asyncio.Queue(maxsize=1)
        self._send_lock = asyncio.Lock()
        self.logger = logging.getLogger(__name__)

    async def send(self, event: ChangeEvent) -> None:
        """Block until a receiver has taken ``event``."""
        async with self._send_lock:
            received = asyncio.get_running_loop().create_future()
            await self._queue.put((event, received))
            await received

    async def receive(self) -> ChangeEvent:
        """Wait for the next event and release its sender."""
        while True:
            event, received = await self._queue.get()
            if received.done():
                # sender was cancelled before hand-off
                self.logger.debug(f"Dropping abandoned event for {event.name}")
                continue
            received.set_result(None)
            return event
