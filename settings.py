from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_HOST_ENV = "IPMI_HOST"
_USERNAME_ENV = "IPMI_USERNAME"
_PASSWORD_ENV = "IPMI_PASSWORD"
_PORT_ENV = "IPMI_PORT"
_INTERFACE_ENV = "IPMI_INTERFACE"
_IPMITOOL_PATH_ENV = "IPMITOOL_PATH"
_COMMAND_TIMEOUT_ENV = "IPMI_COMMAND_TIMEOUT_SECONDS"
_INTERVAL_ENV = "COLLECTION_INTERVAL_SECONDS"
_EXPORTER_PORT_ENV = "EXPORTER_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_IPMI_PORT = 623
DEFAULT_INTERFACE = "lanplus"
DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_EXPORTER_PORT = 8080


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing at startup."""


@dataclass(frozen=True)
class Settings:
    host: str
    username: str
    password: str
    ipmi_port: int = DEFAULT_IPMI_PORT
    interface: str = DEFAULT_INTERFACE
    ipmitool_path: str = "ipmitool"
    command_timeout: Optional[float] = None
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    exporter_port: int = DEFAULT_EXPORTER_PORT
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(host={self.host!r}, username={self.username!r}, password='***', "
            f"ipmi_port={self.ipmi_port}, interface={self.interface!r}, "
            f"interval_seconds={self.interval_seconds}, exporter_port={self.exporter_port})"
        )


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_required_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


def _read_port(name: str, default: int) -> int:
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
    return parsed if 0 < parsed < 65536 else default


def _read_positive_float(name: str, default: Optional[float]) -> Optional[float]:
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


def get_log_level(default: str = "INFO") -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment, failing fast on missing credentials."""
    required = {
        _HOST_ENV: _read_required_env(_HOST_ENV),
        _USERNAME_ENV: _read_required_env(_USERNAME_ENV),
        _PASSWORD_ENV: _read_required_env(_PASSWORD_ENV),
    }
    missing = [name for name, value in required.items() if value is None]
    if missing:
        raise ConfigurationError(
            f"{', '.join(missing)} must be set; "
            f"{_HOST_ENV}, {_USERNAME_ENV}, and {_PASSWORD_ENV} are required."
        )

    return Settings(
        host=required[_HOST_ENV] or "",
        username=required[_USERNAME_ENV] or "",
        password=required[_PASSWORD_ENV] or "",
        ipmi_port=_read_port(_PORT_ENV, DEFAULT_IPMI_PORT),
        interface=_read_str_env(_INTERFACE_ENV, DEFAULT_INTERFACE),
        ipmitool_path=_read_str_env(_IPMITOOL_PATH_ENV, "ipmitool"),
        command_timeout=_read_positive_float(_COMMAND_TIMEOUT_ENV, None),
        interval_seconds=_read_positive_float(_INTERVAL_ENV, DEFAULT_INTERVAL_SECONDS)
        or DEFAULT_INTERVAL_SECONDS,
        exporter_port=_read_port(_EXPORTER_PORT_ENV, DEFAULT_EXPORTER_PORT),
        log_level=get_log_level(),
    )
