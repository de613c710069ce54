# noqa: D104
"""Tests for the log-backed notifier."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from printer_link import host
from printer_link.host import LogNotifier


@pytest.fixture
def logger(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    mock = MagicMock()
    monkeypatch.setattr(host, "LOGGER", mock)
    return mock


@pytest.mark.parametrize(("level", "method"), [("info", "info"), ("warning", "warning"), ("error", "error")])
def test_level_maps_to_logger_method(logger: MagicMock, level: str, method: str) -> None:
    LogNotifier().notify("hello", level=level)

    getattr(logger, method).assert_called_once_with("Notification", message="hello", severity=level)


def test_unknown_level_logs_at_info(logger: MagicMock) -> None:
    LogNotifier().notify("hello", level="debug")
    logger.info.assert_called_once()


def test_disabled_notifier_is_silent(logger: MagicMock) -> None:
    LogNotifier(enabled=False).notify("hello", level="error")
    assert logger.method_calls == []
