import asyncio
from collections.abc import Callable
from typing import Protocol

from schemaforge.core.errors import SchedulerUnavailableError


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask: ...


class AsyncioScheduler:
    """
    Schedules callbacks on an event loop; the returned TimerHandle is cancelable.

    Uses the loop passed in, else the loop running at call time. With neither,
    `call_later` raises SchedulerUnavailableError so the caller can do the work
    immediately instead.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop
        if loop is None or loop.is_closed():
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise SchedulerUnavailableError("No running event loop to schedule on") from None
        return loop.call_later(delay, callback)
