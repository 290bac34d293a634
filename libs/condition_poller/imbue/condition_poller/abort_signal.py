from collections.abc import Callable
from typing import Any
from typing import Final

from loguru import logger

from imbue.condition_poller.interfaces import AbortSignalInterface

DEFAULT_ABORT_REASON: Final[str] = "signal is aborted without reason"


class AbortSignal(AbortSignalInterface):
    """Read side of a cancellation token.

    Signals only ever go from not-aborted to aborted. Listeners run once, synchronously, in the
    order they were added. A listener added after the abort is never called; check is_aborted
    first.
    """

    def __init__(self) -> None:
        self._is_aborted = False
        self._reason: Any = None
        self._listeners: list[Callable[[Any], None]] = []

    @classmethod
    def from_parent(cls, parent: AbortSignalInterface) -> "AbortSignal":
        """Build a signal that aborts, with the same reason, whenever parent does."""
        child = cls()
        if parent.is_aborted:
            child._abort(parent.reason)
        else:
            parent.add_abort_listener(child._abort)
        return child

    @property
    def is_aborted(self) -> bool:
        return self._is_aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_abort_listener(self, listener: Callable[[Any], None]) -> None:
        if self._is_aborted:
            return
        self._listeners.append(listener)

    def remove_abort_listener(self, listener: Callable[[Any], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _abort(self, reason: Any) -> None:
        if self._is_aborted:
            return
        self._is_aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        logger.debug("Abort signal triggered ({} listeners): {}", len(listeners), reason)
        for listener in listeners:
            listener(reason)


class AbortController:
    """Write side of a cancellation token: owns a signal and can abort it."""

    def __init__(self) -> None:
        self._signal = AbortSignal()

    @property
    def signal(self) -> AbortSignal:
        return self._signal

    def abort(self, reason: Any = DEFAULT_ABORT_REASON) -> None:
        """Abort the signal. Only the first call has any effect."""
        self._signal._abort(reason)
