"""Fetching raw sensor reports from a BMC through ``ipmitool``."""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Protocol

from settings import Settings

logger = logging.getLogger(__name__)


class ReportFetchError(RuntimeError):
    """Raised when a sensor report could not be obtained from the target host."""


class ReportSource(Protocol):
    def fetch(self) -> str:
        ...


class IpmitoolReportSource:
    """Runs ``ipmitool sdr elist full`` against one host and returns its output.

    No timeout is applied unless one is configured, so a hung BMC blocks
    the caller until the command returns.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = 623,
        interface: str = "lanplus",
        executable: str = "ipmitool",
        timeout: Optional[float] = None,
    ) -> None:
        self.host = host
        self.username = username
        self._password = password
        self.port = port
        self.interface = interface
        self.executable = executable
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "IpmitoolReportSource":
        return cls(
            host=settings.host,
            username=settings.username,
            password=settings.password,
            port=settings.ipmi_port,
            interface=settings.interface,
            executable=settings.ipmitool_path,
            timeout=settings.command_timeout,
        )

    def build_command(self) -> List[str]:
        return [
            self.executable,
            "-I", self.interface,
            "-H", self.host,
            "-p", str(self.port),
            "-U", self.username,
            "-P", self._password,
            "sdr", "elist", "full",
        ]

    def fetch(self) -> str:
        try:
            result = subprocess.run(
                self.build_command(),
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            logger.debug(
                "ipmitool stderr: %s",
                stderr or "<empty>",
                extra={"host": self.host, "returncode": exc.returncode},
            )
            raise ReportFetchError(
                f"ipmitool exited with status {exc.returncode}"
                + (f": {stderr}" if stderr else "")
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ReportFetchError(
                f"ipmitool did not finish within {exc.timeout} seconds"
            ) from exc
        except OSError as exc:
            raise ReportFetchError(f"failed to execute {self.executable}: {exc}") from exc
        return result.stdout
