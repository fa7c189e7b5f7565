"""Monitor settings with environment overrides."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace

_SIZE_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>B|KB|MB|GB)$", re.IGNORECASE)
_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}

MIN_POLL_INTERVAL_MS = 100


@dataclass(frozen=True, slots=True)
class MonitorSettings:
    default_poll_interval_ms: int = 1000
    min_poll_interval_ms: int = MIN_POLL_INTERVAL_MS
    # Largest log_text accepted by one-off analysis requests.
    max_log_size: int = 10 * 1024 * 1024


def parse_size(s: str) -> int:
    """Parse sizes like ``10MB`` or ``512 KB`` into bytes."""
    m = _SIZE_RE.match(s.strip())
    if not m:
        raise ValueError(f"Invalid size format: {s}. Use format like '10MB', '512KB', etc.")
    return int(float(m.group("value")) * _SIZE_UNITS[m.group("unit").upper()])


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc


def resolve_settings(cfg: MonitorSettings | None = None) -> MonitorSettings:
    """Return settings with LOG_WATCH_* env overrides applied."""
    if cfg is None:
        cfg = MonitorSettings()

    interval = _env_int("LOG_WATCH_POLL_INTERVAL_MS")
    if interval is not None:
        if interval < cfg.min_poll_interval_ms:
            raise ValueError(f"LOG_WATCH_POLL_INTERVAL_MS must be >= {cfg.min_poll_interval_ms}")
        cfg = replace(cfg, default_poll_interval_ms=interval)

    size = os.getenv("LOG_WATCH_MAX_FILE_SIZE")
    if size:
        try:
            value = parse_size(size)
        except ValueError as exc:
            raise ValueError(f"LOG_WATCH_MAX_FILE_SIZE: {exc}") from exc
        if value <= 0:
            raise ValueError("LOG_WATCH_MAX_FILE_SIZE must be a positive size")
        cfg = replace(cfg, max_log_size=value)

    return cfg
