import asyncio

import pytest
from pydantic import ValidationError

from imbue.condition_poller.abort_signal import AbortController
from imbue.condition_poller.data_types import DEFAULT_INTERVAL_MS
from imbue.condition_poller.data_types import DEFAULT_TIMEOUT_MS
from imbue.condition_poller.data_types import DeferredResult
from imbue.condition_poller.data_types import ImmediateResult
from imbue.condition_poller.data_types import WaitForOptions
from imbue.condition_poller.data_types import classify_check_result
from imbue.condition_poller.data_types import return_error_unchanged
from imbue.condition_poller.virtual_clock import VirtualClock


class TestWaitForOptions:
    def test_defaults(self) -> None:
        options = WaitForOptions()

        assert options.interval_ms == DEFAULT_INTERVAL_MS == 50
        assert options.timeout_ms == DEFAULT_TIMEOUT_MS == 1000
        assert options.on_timeout is return_error_unchanged
        assert options.show_original_stack_trace is False
        assert options.clock is None
        assert options.signal is None
        assert options.recheck_trigger is None

    def test_default_on_timeout_returns_its_argument(self) -> None:
        error = ValueError("x")

        assert WaitForOptions().on_timeout(error) is error

    def test_is_frozen(self) -> None:
        options = WaitForOptions()

        with pytest.raises(ValidationError):
            options.timeout_ms = 5  # type: ignore[misc]

    def test_rejects_unknown_options(self) -> None:
        with pytest.raises(ValidationError):
            WaitForOptions(timeout=5)  # type: ignore[call-arg]

    def test_rejects_negative_durations(self) -> None:
        with pytest.raises(ValidationError):
            WaitForOptions(interval_ms=-1)
        with pytest.raises(ValidationError):
            WaitForOptions(timeout_ms=-0.5)

    def test_rejects_non_callable_on_timeout(self) -> None:
        with pytest.raises(ValidationError):
            WaitForOptions(on_timeout="not callable")  # type: ignore[arg-type]

    def test_rejects_collaborators_of_the_wrong_type(self) -> None:
        with pytest.raises(ValidationError):
            WaitForOptions(clock=object())  # type: ignore[arg-type]
        with pytest.raises(ValidationError):
            WaitForOptions(signal=object())  # type: ignore[arg-type]

    def test_accepts_collaborators(self) -> None:
        clock = VirtualClock()
        controller = AbortController()

        options = WaitForOptions(clock=clock, signal=controller.signal)

        assert options.clock is clock
        assert options.signal is controller.signal

    def test_with_updates_returns_a_validated_copy(self) -> None:
        clock = VirtualClock()
        options = WaitForOptions(clock=clock)

        updated = options.with_updates(timeout_ms=10)

        assert updated.timeout_ms == 10
        assert updated.clock is clock
        assert options.timeout_ms == DEFAULT_TIMEOUT_MS
        with pytest.raises(ValidationError):
            options.with_updates(timeout_ms=-1)


class TestClassifyCheckResult:
    def test_plain_values_are_immediate(self) -> None:
        for value in (None, False, 0, "", "ready", [1, 2]):
            result = classify_check_result(value)
            assert isinstance(result, ImmediateResult)
            assert result.value == value

    def test_coroutines_are_deferred(self) -> None:
        async def check() -> str:
            return "later"

        coroutine = check()
        try:
            result = classify_check_result(coroutine)
            assert isinstance(result, DeferredResult)
            assert result.awaitable is coroutine
        finally:
            coroutine.close()

    def test_futures_are_deferred(self) -> None:
        async def run() -> None:
            future = asyncio.get_running_loop().create_future()
            result = classify_check_result(future)
            assert isinstance(result, DeferredResult)
            assert result.awaitable is future

        asyncio.run(run())

    def test_objects_with_a_then_method_are_not_deferred(self) -> None:
        class Thenable:
            def then(self) -> None: ...

        assert isinstance(classify_check_result(Thenable()), ImmediateResult)
