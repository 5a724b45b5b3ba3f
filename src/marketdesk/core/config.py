from __future__ import annotations

from dataclasses import dataclass
import os

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True, slots=True)
class ConsoleConfig:
    """Runtime configuration loaded at process startup."""

    database_url: str = "sqlite:///marketdesk.db"
    http_timeout_seconds: float = 30.0
    order_limit: int = 50
    max_pages: int = 20
    log_level: str = "INFO"


def _positive_number(name: str, default: str, cast: type[int] | type[float]) -> float:
    raw = os.environ.get(name, default).strip()
    try:
        value = cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero, got {raw!r}")
    return value


def load_console_config_from_env() -> ConsoleConfig:
    """Load console config from env and validate it."""
    database_url = os.environ.get(
        "MARKETDESK_DATABASE_URL", "sqlite:///marketdesk.db"
    ).strip()
    if not database_url:
        raise ValueError("MARKETDESK_DATABASE_URL must not be empty")

    log_level = os.environ.get("MARKETDESK_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(
            "MARKETDESK_LOG_LEVEL must be one of: " + ", ".join(sorted(_LOG_LEVELS))
        )

    return ConsoleConfig(
        database_url=database_url,
        http_timeout_seconds=float(
            _positive_number("MARKETDESK_HTTP_TIMEOUT", "30", float)
        ),
        order_limit=int(_positive_number("MARKETDESK_ORDER_LIMIT", "50", int)),
        max_pages=int(_positive_number("MARKETDESK_MAX_PAGES", "20", int)),
        log_level=log_level,
    )
