import asyncio
from collections.abc import Callable

from imbue.condition_poller.interfaces import TimerHandleInterface
from imbue.condition_poller.interfaces import TimerSchedulerInterface


class LoopTimerHandle(TimerHandleInterface):
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self._handle.cancelled()


class LoopTimerScheduler(TimerSchedulerInterface):
    """Schedules callbacks on a real asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> LoopTimerHandle:
        return LoopTimerHandle(self._loop.call_later(max(delay_ms, 0.0) / 1000.0, callback))
