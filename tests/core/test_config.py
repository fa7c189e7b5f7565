from __future__ import annotations

import pytest

from mcp_log_watch_server.core.config import MonitorSettings, parse_size, resolve_settings


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("512B", 512), ("10KB", 10 * 1024), ("10MB", 10 * 1024**2), ("1.5 gb", int(1.5 * 1024**3))],
)
def test_parse_size(raw: str, expected: int) -> None:
    assert parse_size(raw) == expected


@pytest.mark.parametrize("raw", ["10", "ten MB", "10TB", ""])
def test_parse_size_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_size(raw)


def test_resolve_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_WATCH_POLL_INTERVAL_MS", raising=False)
    monkeypatch.delenv("LOG_WATCH_MAX_FILE_SIZE", raising=False)
    assert resolve_settings() == MonitorSettings()


def test_resolve_settings_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_WATCH_POLL_INTERVAL_MS", "250")
    monkeypatch.setenv("LOG_WATCH_MAX_FILE_SIZE", "1MB")

    s = resolve_settings()

    assert s.default_poll_interval_ms == 250
    assert s.max_log_size == 1024**2


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("LOG_WATCH_POLL_INTERVAL_MS", "fast"),
        ("LOG_WATCH_POLL_INTERVAL_MS", "50"),
        ("LOG_WATCH_MAX_FILE_SIZE", "huge"),
        ("LOG_WATCH_MAX_FILE_SIZE", "0MB"),
    ],
)
def test_resolve_settings_invalid_env_raises(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.delenv("LOG_WATCH_POLL_INTERVAL_MS", raising=False)
    monkeypatch.delenv("LOG_WATCH_MAX_FILE_SIZE", raising=False)
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        resolve_settings()
