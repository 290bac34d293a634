from traceback import FrameSummary
from typing import Any
from typing import Final

TIMEOUT_MESSAGE: Final[str] = "Timed out in waitFor."

INVALID_CALLBACK_MESSAGE: Final[str] = "Received `callback` arg must be a function"


class ConditionPollerError(Exception):
    """Base error for the condition poller.

    origin_frame points at the code that started waiting, when it is known. Async tracebacks
    rarely reach back that far on their own.
    """

    origin_frame: FrameSummary | None = None


class InvalidCallbackError(ConditionPollerError, TypeError):
    """Raised synchronously when the check passed to the poller is not callable."""

    def __init__(self, message: str = INVALID_CALLBACK_MESSAGE) -> None:
        super().__init__(message)


class WaitForTimeoutError(ConditionPollerError, TimeoutError):
    """Raised when the deadline passes and no check ever failed with a real error."""

    def __init__(self, message: str = TIMEOUT_MESSAGE) -> None:
        super().__init__(message)


class WaitForAbortedError(ConditionPollerError):
    """Raised when the cancellation signal is aborted before the condition is met."""

    def __init__(self, reason: Any) -> None:
        self.reason = reason
        super().__init__(f"Aborted: {reason}")


class OnTimeoutResultError(ConditionPollerError, TypeError):
    """Raised when an on_timeout hook returns something that is not an exception."""

    def __init__(self, result: Any) -> None:
        self.result = result
        super().__init__(f"on_timeout must return an exception, got {type(result).__name__}: {result!r}")


class PollerAlreadyStartedError(ConditionPollerError, RuntimeError):
    """Raised when start() is called on a poller that has already been started."""
