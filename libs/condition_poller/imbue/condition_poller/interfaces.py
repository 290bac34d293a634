"""Interface definitions for the collaborators the poller talks to."""

from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from typing import Any


class TimerHandleInterface(ABC):
    """A scheduled callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Cancelling twice, or after it ran, is a no-op."""
        ...


class TimerSchedulerInterface(ABC):
    """Schedules one-shot callbacks after a delay measured in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandleInterface:
        """Run callback once, delay_ms from now."""
        ...


class VirtualClockInterface(TimerSchedulerInterface, ABC):
    """A scheduler whose time only moves when somebody advances it.

    The poller pumps a virtual clock itself, because virtual time never advances on its own.
    """

    @abstractmethod
    async def advance_timers_by_time(self, ms: float) -> None:
        """Move time forward by ms, firing every timer that falls due on the way."""
        ...

    @abstractmethod
    async def flush_pending_callbacks(self) -> None:
        """Let already-scheduled event loop work (woken futures, task steps) run."""
        ...


class AbortSignalInterface(ABC):
    """A cancellation token that can be queried and subscribed to."""

    @property
    @abstractmethod
    def is_aborted(self) -> bool: ...

    @property
    @abstractmethod
    def reason(self) -> Any:
        """Human-readable reason for the abort. Only meaningful once aborted."""
        ...

    @abstractmethod
    def add_abort_listener(self, listener: Callable[[Any], None]) -> None:
        """Call listener with the reason when the signal is aborted."""
        ...

    @abstractmethod
    def remove_abort_listener(self, listener: Callable[[Any], None]) -> None:
        """Stop notifying listener. Removing an unknown listener is a no-op."""
        ...


class RecheckTriggerInterface(ABC):
    """A source of "something changed, check again" notifications."""

    @abstractmethod
    def subscribe(self, callback: Callable[[], None]) -> None: ...

    @abstractmethod
    def unsubscribe(self, callback: Callable[[], None]) -> None: ...
