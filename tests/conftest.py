"""Shared test fixtures."""
import asyncio

import pytest
import pytest_asyncio

from gifttt.core.variables import VariableManager
from gifttt.storage.store import MemoryStore


class EventRecorder:
    """Drains a VariableManager's update channel, keeping every event."""

    def __init__(self, variables: VariableManager):
        self.variables = variables
        self.events = []
        self._task = None

    def start(self) -> None:
        self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        while True:
            self.events.append(await self.variables.updates.receive())

    async def stop(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    @property
    def names(self):
        return [e.name for e in self.events]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def variables(store):
    return VariableManager(store)


@pytest_asyncio.fixture
async def recorder(variables):
    rec = EventRecorder(variables)
    rec.start()
    yield rec
    await rec.stop()


async def wait_idle(manager, timeout: float = 2.0) -> None:
    """Wait until a RuleManager has no rule batch in flight."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    await asyncio.sleep(0.01)
    while manager.in_flight:
        if loop.time() > deadline:
            raise AssertionError(f"{manager.in_flight} rule batches still running")
        await asyncio.sleep(0.01)
