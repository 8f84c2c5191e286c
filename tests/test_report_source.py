from __future__ import annotations

import subprocess
from typing import Any, Dict, List

import pytest

from services.report_source import IpmitoolReportSource, ReportFetchError
from settings import Settings


def _source(**overrides: Any) -> IpmitoolReportSource:
    params: Dict[str, Any] = {
        "host": "10.0.0.5",
        "username": "admin",
        "password": "hunter2",
    }
    params.update(overrides)
    return IpmitoolReportSource(**params)


def test_build_command_targets_sdr_elist_full() -> None:
    command = _source().build_command()

    assert command == [
        "ipmitool",
        "-I", "lanplus",
        "-H", "10.0.0.5",
        "-p", "623",
        "-U", "admin",
        "-P", "hunter2",
        "sdr", "elist", "full",
    ]


def test_from_settings_copies_connection_parameters() -> None:
    settings = Settings(
        host="bmc.local",
        username="root",
        password="calvin",
        ipmi_port=6230,
        interface="lan",
        ipmitool_path="/usr/local/bin/ipmitool",
        command_timeout=20.0,
    )

    source = IpmitoolReportSource.from_settings(settings)

    assert source.build_command()[:7] == [
        "/usr/local/bin/ipmitool", "-I", "lan", "-H", "bmc.local", "-p", "6230"
    ]
    assert source.timeout == 20.0


def test_fetch_returns_stdout(monkeypatch) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_run(command, **kwargs):
        calls.append({"command": command, **kwargs})
        return subprocess.CompletedProcess(command, 0, stdout="FAN1 | 41h | ok | 29.1 | 5400 RPM\n", stderr="")

    monkeypatch.setattr("services.report_source.subprocess.run", fake_run)

    output = _source().fetch()

    assert output.startswith("FAN1")
    assert calls[0]["capture_output"] is True
    assert calls[0]["text"] is True
    assert calls[0]["check"] is True
    assert calls[0]["timeout"] is None


def test_fetch_wraps_nonzero_exit(monkeypatch) -> None:
    def fake_run(command, **kwargs):
        raise subprocess.CalledProcessError(
            1, command, output="", stderr="Error: Unable to establish IPMI v2 / RMCP+ session\n"
        )

    monkeypatch.setattr("services.report_source.subprocess.run", fake_run)

    with pytest.raises(ReportFetchError) as excinfo:
        _source().fetch()

    message = str(excinfo.value)
    assert "status 1" in message
    assert "Unable to establish" in message
    assert "hunter2" not in message


def test_fetch_wraps_missing_binary(monkeypatch) -> None:
    def fake_run(command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr("services.report_source.subprocess.run", fake_run)

    with pytest.raises(ReportFetchError, match="failed to execute ipmitool"):
        _source().fetch()


def test_fetch_wraps_configured_timeout(monkeypatch) -> None:
    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr("services.report_source.subprocess.run", fake_run)

    with pytest.raises(ReportFetchError, match="within 5.0 seconds"):
        _source(timeout=5.0).fetch()
