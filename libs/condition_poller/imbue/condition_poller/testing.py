"""Test helpers for code that polls with the condition poller."""

import asyncio
from collections.abc import Callable
from typing import Any

from imbue.condition_poller.virtual_clock import VirtualClock


class RecordingCheck:
    """A check that counts its invocations and delegates to a behavior callable.

    The behavior receives the 1-based call number, so tests can script "fail twice, then pass".
    """

    def __init__(self, behavior: Callable[[int], Any]) -> None:
        self._behavior = behavior
        self.call_count = 0

    def __call__(self) -> Any:
        self.call_count += 1
        return self._behavior(self.call_count)


def raise_error(error: BaseException) -> Callable[[int], Any]:
    def behavior(call_number: int) -> Any:
        raise error

    return behavior


def pass_on_call(passing_call_number: int, value: Any = None) -> Callable[[int], Any]:
    """Behavior that fails with a numbered AssertionError until the given call, then returns value."""

    def behavior(call_number: int) -> Any:
        if call_number < passing_call_number:
            raise AssertionError(f"not ready on call {call_number}")
        return value

    return behavior


def make_pending_future() -> asyncio.Future[Any]:
    """A future on the running loop that the test settles by hand."""
    return asyncio.get_running_loop().create_future()


class FailingVirtualClock(VirtualClock):
    """A virtual clock whose advance_timers_by_time raises once it has been advanced enough times."""

    def __init__(self, error: BaseException, fail_on_advance: int = 1) -> None:
        super().__init__()
        self._error = error
        self._fail_on_advance = fail_on_advance
        self.advance_count = 0

    async def advance_timers_by_time(self, ms: float) -> None:
        self.advance_count += 1
        if self.advance_count >= self._fail_on_advance:
            raise self._error
        await super().advance_timers_by_time(ms)
