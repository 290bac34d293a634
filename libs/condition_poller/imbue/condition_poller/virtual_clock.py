import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Final

from loguru import logger

from imbue.condition_poller.interfaces import TimerHandleInterface
from imbue.condition_poller.interfaces import VirtualClockInterface

# How many times flush_pending_callbacks yields to the loop. A resolved future wakes its awaiting
# task one iteration later, and that task may resolve another future in turn.
DEFAULT_FLUSH_ITERATIONS: Final[int] = 10


class VirtualTimerHandle(TimerHandleInterface):
    def __init__(self, due_ms: float, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self._callback = callback
        self._is_cancelled = False
        self._has_run = False

    def cancel(self) -> None:
        self._is_cancelled = True

    @property
    def is_pending(self) -> bool:
        return not self._is_cancelled and not self._has_run

    def run(self) -> None:
        self._has_run = True
        self._callback()


class VirtualClock(VirtualClockInterface):
    """A clock whose time only moves when advance_timers_by_time is awaited.

    Timers fire in due order, ties in scheduling order. A timer scheduled while the clock is
    advancing still fires during that advance if it falls due inside the window.
    """

    def __init__(self, start_ms: float = 0.0, flush_iterations: int = DEFAULT_FLUSH_ITERATIONS) -> None:
        self._now_ms = start_ms
        self._flush_iterations = flush_iterations
        self._timers: list[tuple[float, int, VirtualTimerHandle]] = []
        self._sequence = itertools.count()

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def pending_timer_count(self) -> int:
        return sum(1 for _, _, handle in self._timers if handle.is_pending)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> VirtualTimerHandle:
        handle = VirtualTimerHandle(due_ms=self._now_ms + max(delay_ms, 0.0), callback=callback)
        heapq.heappush(self._timers, (handle.due_ms, next(self._sequence), handle))
        return handle

    async def advance_timers_by_time(self, ms: float) -> None:
        if ms < 0:
            raise ValueError(f"Cannot move a virtual clock backwards (got {ms} ms)")
        target_ms = self._now_ms + ms
        while True:
            handle = self._pop_next_due(target_ms)
            if handle is None:
                break
            self._now_ms = handle.due_ms
            handle.run()
            await self.flush_pending_callbacks()
        self._now_ms = target_ms
        await self.flush_pending_callbacks()

    async def flush_pending_callbacks(self) -> None:
        for _ in range(self._flush_iterations):
            await asyncio.sleep(0)

    def _pop_next_due(self, target_ms: float) -> VirtualTimerHandle | None:
        while self._timers and self._timers[0][0] <= target_ms:
            _, _, handle = heapq.heappop(self._timers)
            if handle.is_pending:
                return handle
            logger.trace("Dropping cancelled virtual timer due at {} ms", handle.due_ms)
        return None
