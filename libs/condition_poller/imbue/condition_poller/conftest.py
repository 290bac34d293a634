from collections.abc import Iterator

import pytest
from loguru import logger

from imbue.condition_poller.abort_signal import AbortController
from imbue.condition_poller.recheck_trigger import RecheckTrigger
from imbue.condition_poller.virtual_clock import VirtualClock


@pytest.fixture
def virtual_clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def abort_controller() -> AbortController:
    return AbortController()


@pytest.fixture
def recheck_trigger() -> RecheckTrigger:
    return RecheckTrigger()


@pytest.fixture
def captured_logs() -> Iterator[list[str]]:
    """Collect loguru messages at TRACE and above for the duration of a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="TRACE", format="{message}")
    try:
        yield messages
    finally:
        logger.remove(handler_id)
