import inspect
from collections.abc import Callable
from typing import Any
from typing import Final
from typing import Literal
from typing import Self

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from imbue.condition_poller.interfaces import AbortSignalInterface
from imbue.condition_poller.interfaces import RecheckTriggerInterface
from imbue.condition_poller.interfaces import VirtualClockInterface
from imbue.condition_poller.primitives import NonNegativeMilliseconds

DEFAULT_INTERVAL_MS: Final[float] = 50.0
DEFAULT_TIMEOUT_MS: Final[float] = 1000.0


def return_error_unchanged(error: BaseException) -> BaseException:
    return error


class WaitForOptions(BaseModel):
    """Immutable per-invocation configuration for the poller."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    interval_ms: NonNegativeMilliseconds = Field(
        default=NonNegativeMilliseconds(DEFAULT_INTERVAL_MS),
        description="Delay between re-checks",
    )
    timeout_ms: NonNegativeMilliseconds = Field(
        default=NonNegativeMilliseconds(DEFAULT_TIMEOUT_MS),
        description="Overall deadline, measured from the start of polling",
    )
    on_timeout: Callable[[BaseException], Any] = Field(
        default=return_error_unchanged,
        description="Maps the terminal error to the exception the caller receives",
    )
    show_original_stack_trace: bool = Field(
        default=False,
        description="Leave the generic timeout error's origin alone instead of pointing it at the caller",
    )
    clock: VirtualClockInterface | None = Field(
        default=None,
        description="Virtual clock to schedule on and pump instead of the event loop's real timers",
    )
    signal: AbortSignalInterface | None = Field(
        default=None,
        description="Cancellation token; aborting it rejects the wait",
    )
    recheck_trigger: RecheckTriggerInterface | None = Field(
        default=None,
        description="Extra source of re-check requests, on top of the interval timer",
    )

    def with_updates(self, **changes: Any) -> Self:
        """Return a validated copy with the given fields replaced."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self).model_validate(values)


class ImmediateResult(BaseModel):
    """The check returned a plain value: the wait is over."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["immediate"] = "immediate"
    value: Any = Field(description="What the check returned")


class DeferredResult(BaseModel):
    """The check returned an awaitable: the outcome arrives later."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["deferred"] = "deferred"
    awaitable: Any = Field(description="Coroutine, future or other awaitable returned by the check")


CheckResult = ImmediateResult | DeferredResult


def classify_check_result(result: Any) -> CheckResult:
    """Tag a check's return value as immediate or deferred."""
    if inspect.isawaitable(result):
        return DeferredResult(awaitable=result)
    return ImmediateResult(value=result)

