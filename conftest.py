"""Root conftest enforcing a time limit on the whole test suite.

Everything here waits on real or virtual timers, so a suite that suddenly gets slow usually means a
poller that stopped settling on time.
"""

import os
import time
from typing import Final

import pytest

_LOCAL_MAX_DURATION_SECONDS: Final[float] = 30.0
_CI_MAX_DURATION_SECONDS: Final[float] = 60.0


def get_max_duration_seconds() -> float:
    """PYTEST_MAX_DURATION wins; otherwise CI gets a looser limit than local runs."""
    if "PYTEST_MAX_DURATION" in os.environ:
        return float(os.environ["PYTEST_MAX_DURATION"])
    if "CI" in os.environ:
        return _CI_MAX_DURATION_SECONDS
    return _LOCAL_MAX_DURATION_SECONDS


@pytest.hookimpl(tryfirst=True)
def pytest_sessionstart(session: pytest.Session) -> None:
    setattr(session, "start_time", time.time())


@pytest.hookimpl(trylast=True)
def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    """Fail the run if the test session took longer than the configured limit."""
    if not hasattr(session, "start_time"):
        return
    duration = time.time() - session.start_time
    max_duration = get_max_duration_seconds()
    if duration > max_duration:
        pytest.exit(
            f"Test suite took {duration:.2f}s, exceeding the {max_duration}s limit",
            returncode=1,
        )
