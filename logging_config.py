from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Mapping, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "sensor_id",
    "strategy",
    "step_minutes",
    "point_count",
    "reading_count",
    "row_number",
    "reason",
    "status_code",
    "interval_seconds",
)

# httpx logs every completion request at INFO.
_LIBRARY_LEVELS: Mapping[str, str] = {
    "httpx": "WARNING",
    "httpcore": "WARNING",
}

_configured = False


class ContextualFormatter(logging.Formatter):
    """Render UTC timestamps and append selected ``extra=`` fields as ``key=value`` pairs."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = time.strftime(datefmt or "%Y-%m-%dT%H:%M:%S", self.converter(record.created))
        return f"{stamp}.{int(record.msecs):03d}Z"

    @staticmethod
    def _render_value(value: Any) -> str:
        if isinstance(value, float):
            return f"{value:g}"
        text = str(value)
        if not text or any(char.isspace() for char in text):
            return f'"{text}"'
        return text

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{key}={self._render_value(getattr(record, key))}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        ]
        if not context:
            return message
        return f"{message} | {' '.join(context)}"


def build_logging_config(
    level: str | int,
    logger_levels: Mapping[str, str | int] | None = None,
) -> Dict[str, Any]:
    loggers: Dict[str, Dict[str, Any]] = {
        name: {"level": library_level} for name, library_level in _LIBRARY_LEVELS.items()
    }
    for name, logger_level in (logger_levels or {}).items():
        loggers[name] = {"level": logger_level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "style": "%",
                "extra_keys": list(_DEFAULT_EXTRA_KEYS),
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "contextual",
            }
        },
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(
    level: str | int | None = None,
    *,
    logger_levels: Mapping[str, str | int] | None = None,
    force: bool = False,
) -> None:
    """Install the contextual handler on the root logger.

    Later calls are ignored unless ``force`` is set, so the app lifespan can run
    more than once in a process (tests build several apps).
    """
    global _configured
    if _configured and not force:
        return

    log_level = level if level is not None else get_settings().log_level
    dictConfig(build_logging_config(log_level, logger_levels))

    _configured = True
