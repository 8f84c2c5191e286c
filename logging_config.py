from __future__ import annotations

import logging
from logging.config import dictConfig
from threading import Lock
from typing import Iterable, Sequence

from settings import get_log_level

_DEFAULT_EXTRA_KEYS = (
    "host",
    "cycle",
    "sensor_count",
    "duration_ms",
    "interval_seconds",
    "returncode",
    "line_number",
    "reason",
)

# Per-line parse context is only interesting when tracing a report.
_DEBUG_ONLY_KEYS = frozenset({"line_number", "reason"})

REDACTED = "***"

_secrets: set[str] = set()
_secrets_lock = Lock()
_configured = False


def register_secret(value: str) -> None:
    """Mask ``value`` in every formatted log line, tracebacks included."""
    if not value:
        return
    with _secrets_lock:
        _secrets.add(value)


def _redact(message: str) -> str:
    with _secrets_lock:
        secrets = sorted(_secrets, key=len, reverse=True)
    for secret in secrets:
        message = message.replace(secret, REDACTED)
    return message


class ContextualFormatter(logging.Formatter):
    """Appends known ``extra=`` fields as ``key=value`` and masks registered secrets.

    ``ipmitool`` receives the BMC password on its command line, so a
    ``CalledProcessError`` rendered into a traceback would otherwise carry it.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        verbose = record.levelno <= logging.DEBUG
        context_parts: list[str] = []
        for key in self._extra_keys:
            if key in _DEBUG_ONLY_KEYS and not verbose:
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            message = f"{message} | {' '.join(context_parts)}"
        return _redact(message)


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual formatter on the root logger once per process."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_log_level()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
