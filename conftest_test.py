"""Tests for the root conftest's suite duration limit."""

import pytest

from conftest import get_max_duration_seconds


def test_explicit_max_duration_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYTEST_MAX_DURATION", "12.5")
    monkeypatch.setenv("CI", "1")

    assert get_max_duration_seconds() == 12.5


def test_ci_gets_a_looser_limit_than_local_runs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PYTEST_MAX_DURATION", raising=False)
    monkeypatch.delenv("CI", raising=False)
    local_limit = get_max_duration_seconds()

    monkeypatch.setenv("CI", "true")

    assert get_max_duration_seconds() > local_limit
