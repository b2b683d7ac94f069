from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TABLE_PATH_ENV = "SENSOR_TABLE_PATH"
_HISTORY_LIMIT_ENV = "SENSOR_HISTORY_LIMIT"
_FORECAST_POINTS_ENV = "FORECAST_DEFAULT_POINTS"
_FORECAST_STEP_ENV = "FORECAST_DEFAULT_STEP_MINUTES"
_FEED_ENABLED_ENV = "SENSOR_FEED_ENABLED"
_FEED_INTERVAL_ENV = "SENSOR_FEED_INTERVAL_SECONDS"
_API_KEY_ENVS = ("OPENAI_API_KEY", "OPENAI_KEY")
_BASE_URL_ENV = "OPENAI_BASE_URL"
_MODEL_ENV = "OPENAI_MODEL"
_COMPLETION_TIMEOUT_ENV = "COMPLETION_TIMEOUT_SECONDS"
_COMPLETION_MAX_TOKENS_ENV = "COMPLETION_MAX_TOKENS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    table_persistence_path: Optional[str]
    history_limit: int
    forecast_points: int
    forecast_step_minutes: int
    feed_enabled: bool
    feed_interval_seconds: float
    openai_api_key: Optional[str]
    openai_base_url: str
    openai_model: str
    completion_timeout_seconds: float
    completion_max_tokens: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_api_key() -> Optional[str]:
    for name in _API_KEY_ENVS:
        key = _read_optional_env(name, None)
        if key:
            return key
    return None


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/sensors.json"),
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 288),
        forecast_points=_read_positive_int(_FORECAST_POINTS_ENV, 12),
        forecast_step_minutes=_read_positive_int(_FORECAST_STEP_ENV, 5),
        feed_enabled=_read_bool(_FEED_ENABLED_ENV, True),
        feed_interval_seconds=_read_positive_float(_FEED_INTERVAL_ENV, 300.0),
        openai_api_key=_read_api_key(),
        openai_base_url=_read_str_env(_BASE_URL_ENV, "https://api.openai.com/v1").rstrip("/"),
        openai_model=_read_str_env(_MODEL_ENV, "gpt-3.5-turbo"),
        completion_timeout_seconds=_read_positive_float(_COMPLETION_TIMEOUT_ENV, 20.0),
        completion_max_tokens=_read_positive_int(_COMPLETION_MAX_TOKENS_ENV, 400),
        log_level=_read_log_level("INFO"),
    )
