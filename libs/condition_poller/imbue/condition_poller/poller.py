"""Repeatedly run a check until it passes, time runs out, or the wait is aborted.

A check is any zero-argument callable. Returning (anything, including None) means the condition
holds. Raising means "not yet": the error is remembered and the check runs again on the next
interval tick or re-check trigger. Returning an awaitable defers the verdict to that awaitable,
and no further checks run until it settles.

If the deadline passes, the wait fails with the most recent error the check produced, since that
usually explains what was wrong. When there is none, it fails with WaitForTimeoutError.
"""

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from traceback import FrameSummary
from typing import Any
from typing import Final
from typing import Generic
from typing import TypeVar
from typing import assert_never

from loguru import logger

from imbue.condition_poller.data_types import DEFAULT_INTERVAL_MS
from imbue.condition_poller.data_types import DEFAULT_TIMEOUT_MS
from imbue.condition_poller.data_types import DeferredResult
from imbue.condition_poller.data_types import ImmediateResult
from imbue.condition_poller.data_types import WaitForOptions
from imbue.condition_poller.data_types import classify_check_result
from imbue.condition_poller.data_types import return_error_unchanged
from imbue.condition_poller.errors import InvalidCallbackError
from imbue.condition_poller.errors import OnTimeoutResultError
from imbue.condition_poller.errors import PollerAlreadyStartedError
from imbue.condition_poller.errors import WaitForAbortedError
from imbue.condition_poller.errors import WaitForTimeoutError
from imbue.condition_poller.interfaces import AbortSignalInterface
from imbue.condition_poller.interfaces import RecheckTriggerInterface
from imbue.condition_poller.interfaces import TimerHandleInterface
from imbue.condition_poller.interfaces import TimerSchedulerInterface
from imbue.condition_poller.interfaces import VirtualClockInterface
from imbue.condition_poller.primitives import PollState
from imbue.condition_poller.stack_trace import capture_origin_frame
from imbue.condition_poller.stack_trace import relocate_stack_trace
from imbue.condition_poller.timers import LoopTimerScheduler

T = TypeVar("T")

# Raised through the poller instead of being treated as a failed check.
NON_RECOVERABLE_EXCEPTIONS: Final[tuple[type[BaseException], ...]] = (KeyboardInterrupt, SystemExit)

# Repeating timers never fire more often than this, matching how host timers clamp an interval of 0.
MIN_REPEAT_DELAY_MS: Final[float] = 1.0


def _describe_callback(callback: Callable[..., Any]) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class Poller(Generic[T]):
    """One invocation of the polling loop.

    Most callers want poll() or wait_for(). Use Poller directly to reach check(), e.g. to wire
    a change observer that requests immediate re-checks, or to inspect the state.

    Must be created while an asyncio event loop is running. The result future settles exactly
    once; after that, timers, the abort listener and the re-check subscription are all released,
    and late timer ticks, triggers and awaitable outcomes are ignored.
    """

    def __init__(
        self,
        callback: Callable[[], T | Awaitable[T]],
        options: WaitForOptions,
        origin_frame: FrameSummary | None = None,
    ) -> None:
        if not callable(callback):
            raise InvalidCallbackError()
        self._callback = callback
        self._options = options
        self._origin_frame = origin_frame
        self._loop = asyncio.get_running_loop()
        self._scheduler: TimerSchedulerInterface = (
            options.clock if options.clock is not None else LoopTimerScheduler(self._loop)
        )
        self._result: asyncio.Future[T] = self._loop.create_future()
        self._state = PollState.IDLE
        self._is_started = False
        self._check_count = 0
        self._last_error: BaseException | None = None
        self._timeout_handle: TimerHandleInterface | None = None
        self._interval_handle: TimerHandleInterface | None = None
        self._abort_signal: AbortSignalInterface | None = None
        self._recheck_trigger: RecheckTriggerInterface | None = None
        self._clock_driver: asyncio.Task[None] | None = None

    @property
    def result(self) -> asyncio.Future[T]:
        return self._result

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def is_settled(self) -> bool:
        return self._state == PollState.SETTLED

    @property
    def check_count(self) -> int:
        """How many times the check callback has been invoked."""
        return self._check_count

    @property
    def last_error(self) -> BaseException | None:
        """The most recent failure of the check. Cleared once the poller settles."""
        return self._last_error

    def start(self) -> asyncio.Future[T]:
        """Arm the timers, run the first check synchronously and return the result future."""
        if self._is_started:
            raise PollerAlreadyStartedError("This poller has already been started")
        self._is_started = True
        options = self._options
        logger.debug(
            "Waiting for {} (timeout={} ms, interval={} ms)",
            _describe_callback(self._callback),
            options.timeout_ms,
            options.interval_ms,
        )

        signal = options.signal
        if signal is not None and signal.is_aborted:
            self._settle_with_error(WaitForAbortedError(signal.reason))
            return self._result

        self._result.add_done_callback(self._handle_result_done)
        self._timeout_handle = self._scheduler.call_later(options.timeout_ms, self._handle_timeout)
        self._schedule_interval_tick()
        if signal is not None:
            signal.add_abort_listener(self._handle_abort)
            self._abort_signal = signal
        if options.recheck_trigger is not None:
            options.recheck_trigger.subscribe(self.check)
            self._recheck_trigger = options.recheck_trigger

        self.check()

        if options.clock is not None and not self.is_settled:
            self._clock_driver = self._loop.create_task(self._drive_clock(options.clock))
        return self._result

    def check(self) -> None:
        """Run the check now, unless a check is already running or pending, or polling is over."""
        if self._state != PollState.IDLE:
            return
        self._transition(PollState.CHECKING)
        self._check_count += 1
        try:
            check_result = classify_check_result(self._callback())
        except NON_RECOVERABLE_EXCEPTIONS:
            raise
        except BaseException as e:
            self._record_failure(e)
            return

        match check_result:
            case ImmediateResult():
                self._settle_with_value(check_result.value)
            case DeferredResult():
                self._await_deferred(check_result)
            case _ as unreachable:
                assert_never(unreachable)

    def _transition(self, new_state: PollState) -> None:
        if self._state == PollState.SETTLED:
            return
        self._state = new_state

    def _record_failure(self, error: BaseException) -> None:
        if self.is_settled:
            return
        logger.trace("Check {} failed, will retry: {!r}", self._check_count, error)
        self._last_error = error
        self._transition(PollState.IDLE)

    def _await_deferred(self, check_result: DeferredResult) -> None:
        self._transition(PollState.AWAITING_DEFERRED)
        try:
            deferred = asyncio.ensure_future(check_result.awaitable)
        except (TypeError, ValueError) as e:
            self._record_failure(e)
            return
        deferred.add_done_callback(self._handle_deferred_done)

    def _handle_deferred_done(self, deferred: asyncio.Future[Any]) -> None:
        # retrieving the exception keeps asyncio from reporting it as never retrieved
        error = None if deferred.cancelled() else deferred.exception()
        if self.is_settled:
            logger.trace("Ignoring the outcome of check {}, polling already finished", self._check_count)
            return
        if deferred.cancelled():
            logger.trace("Awaitable from check {} was cancelled, will retry", self._check_count)
            self._transition(PollState.IDLE)
        elif error is not None:
            self._record_failure(error)
        else:
            self._settle_with_value(deferred.result())

    def _schedule_interval_tick(self) -> None:
        delay_ms = max(self._options.interval_ms, MIN_REPEAT_DELAY_MS)
        self._interval_handle = self._scheduler.call_later(delay_ms, self._handle_interval_tick)

    def _handle_interval_tick(self) -> None:
        if self.is_settled:
            return
        self._schedule_interval_tick()
        self.check()

    def _handle_timeout(self) -> None:
        if self.is_settled:
            return
        error = self._last_error
        if error is None:
            error = WaitForTimeoutError()
            if not self._options.show_original_stack_trace:
                relocate_stack_trace(error, self._origin_frame)
        logger.debug(
            "Gave up waiting for {} after {} ms and {} checks: {!r}",
            _describe_callback(self._callback),
            self._options.timeout_ms,
            self._check_count,
            error,
        )
        try:
            final_error = self._options.on_timeout(error)
        except NON_RECOVERABLE_EXCEPTIONS:
            raise
        except BaseException as e:
            final_error = e
        if not isinstance(final_error, BaseException):
            final_error = OnTimeoutResultError(final_error)
        self._settle_with_error(final_error)

    def _handle_abort(self, reason: Any) -> None:
        logger.debug("Wait for {} aborted: {}", _describe_callback(self._callback), reason)
        self._settle_with_error(WaitForAbortedError(reason))

    def _handle_result_done(self, result: asyncio.Future[T]) -> None:
        if result.cancelled() and not self.is_settled:
            logger.debug("Wait for {} was cancelled by its caller", _describe_callback(self._callback))
            self._enter_settled_state()

    async def _drive_clock(self, clock: VirtualClockInterface) -> None:
        step_ms = max(self._options.interval_ms, MIN_REPEAT_DELAY_MS)
        signal = self._options.signal
        try:
            while not self.is_settled and not (signal is not None and signal.is_aborted):
                await clock.advance_timers_by_time(step_ms)
        except (*NON_RECOVERABLE_EXCEPTIONS, asyncio.CancelledError):
            raise
        except BaseException as e:
            logger.opt(exception=e).debug("Virtual clock failed while waiting")
            self._settle_with_error(e)

    def _settle_with_value(self, value: T) -> None:
        if not self._enter_settled_state():
            return
        logger.trace("Condition met after {} checks", self._check_count)
        if not self._result.done():
            self._result.set_result(value)

    def _settle_with_error(self, error: BaseException) -> None:
        if not self._enter_settled_state():
            return
        if not self._result.done():
            self._result.set_exception(error)

    def _enter_settled_state(self) -> bool:
        """Latch the terminal state and release everything. Returns False if already settled."""
        if self._state == PollState.SETTLED:
            return False
        self._state = PollState.SETTLED
        for handle in (self._timeout_handle, self._interval_handle):
            if handle is not None:
                handle.cancel()
        self._timeout_handle = None
        self._interval_handle = None
        if self._abort_signal is not None:
            self._abort_signal.remove_abort_listener(self._handle_abort)
            self._abort_signal = None
        if self._recheck_trigger is not None:
            self._recheck_trigger.unsubscribe(self.check)
            self._recheck_trigger = None
        self._last_error = None
        return True


def poll(
    callback: Callable[[], T | Awaitable[T]],
    options: WaitForOptions | None = None,
) -> asyncio.Future[T]:
    """Start polling callback and return a future for the outcome.

    Raises InvalidCallbackError immediately if callback is not callable. The first check runs
    before this returns, so a condition that already holds yields a future that is already done.
    """
    poller: Poller[T] = Poller(callback, options or WaitForOptions(), capture_origin_frame())
    return poller.start()


def wait_for(
    callback: Callable[[], T | Awaitable[T]],
    *,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_INTERVAL_MS,
    on_timeout: Callable[[BaseException], Any] = return_error_unchanged,
    show_original_stack_trace: bool = False,
    clock: VirtualClockInterface | None = None,
    signal: AbortSignalInterface | None = None,
    recheck_trigger: RecheckTriggerInterface | None = None,
) -> asyncio.Future[T]:
    """Keyword-argument form of poll().

    Example:
        await wait_for(lambda: _assert_file_written(path), timeout_ms=2000)
    """
    options = WaitForOptions(
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        on_timeout=on_timeout,
        show_original_stack_trace=show_original_stack_trace,
        clock=clock,
        signal=signal,
        recheck_trigger=recheck_trigger,
    )
    poller: Poller[T] = Poller(callback, options, capture_origin_frame())
    return poller.start()
