from collections.abc import Callable

from imbue.condition_poller.interfaces import RecheckTriggerInterface


class RecheckTrigger(RecheckTriggerInterface):
    """Fan-out of "check again now" requests, e.g. from a change observer.

    notify() calls every subscriber synchronously. Subscribers added or removed while notifying
    take effect from the next notify().
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[], None]) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def notify(self) -> None:
        for callback in tuple(self._subscribers):
            callback()
