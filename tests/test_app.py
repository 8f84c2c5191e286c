import time
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from app.main import create_app
from services.collector import CollectionService, build_default_collector
from services.registry import MetricRegistry
from services.report_source import ReportFetchError
from settings import ConfigurationError, get_settings

REPORT = """\
12V              | 30h | ok  |  7.17 | 12.19 Volts
CPU1 Temp        | 01h | ok  |  3.1 | 45 degrees C
FAN1             | 41h | ok  | 29.1 | 5400 RPM
FAN2             | 42h | ns  | 29.2 | No Reading
"""


class StubSource:
    def __init__(self, report: str) -> None:
        self.report = report
        self.fail = False

    def fetch(self) -> str:
        if self.fail:
            raise ReportFetchError("ipmitool exited with status 1")
        return self.report


@pytest.fixture
def collectors(monkeypatch) -> Iterator[Dict[str, CollectionService]]:
    built: Dict[str, CollectionService] = {}

    def build_test_collector(interval_seconds: float | None = None) -> CollectionService:
        collector = built.get("default")
        if collector is None:
            collector = CollectionService(
                source=StubSource(REPORT),
                registry=MetricRegistry(),
                host="bmc.test",
                interval_seconds=interval_seconds or 60.0,
            )
            built["default"] = collector
        return collector

    def cache_clear() -> None:
        while built:
            _, collector = built.popitem()
            collector.shutdown(timeout=2.0)

    build_test_collector.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_collector", build_test_collector)
    monkeypatch.setattr("app.api.build_default_collector", build_test_collector)
    monkeypatch.setattr("services.collector.build_default_collector", build_test_collector)

    yield built

    cache_clear()


def _poll_for_cycle(client: TestClient, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    last_payload: dict | None = None
    while time.monotonic() < deadline:
        response = client.get("/health")
        assert response.status_code == 200
        payload = response.json()
        last_payload = payload
        if payload["cycles_completed"] >= 1:
            return payload
        time.sleep(0.05)
    pytest.fail(f"No collection cycle completed: {last_payload}")


def test_metrics_served_after_first_cycle(collectors) -> None:
    app = create_app()
    with TestClient(app) as client:
        status = _poll_for_cycle(client)
        response = client.get("/metrics")

    assert status["host"] == "bmc.test"
    assert status["running"] is True
    assert status["last_cycle"]["sensor_count"] == 3

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    families = {family.name: family for family in text_string_to_metric_families(response.text)}
    values = {
        (family_name, sample.labels["sensor_name"]): sample.value
        for family_name, family in families.items()
        for sample in family.samples
    }
    assert values == {
        ("ipmi_voltage_volts", "12V"): 12.19,
        ("ipmi_temperature_celsius", "CPU1 Temp"): 45.0,
        ("ipmi_fan_speed_rpm", "FAN1"): 5400.0,
    }
    assert {sample.labels["host"] for family in families.values() for sample in family.samples} == {"bmc.test"}
    assert "ipmi_power_watts" in families
    assert "ipmi_current_amperes" in families


def test_metrics_stay_stale_when_fetch_fails(collectors) -> None:
    app = create_app()
    with TestClient(app) as client:
        _poll_for_cycle(client)
        collector = collectors["default"]
        collector.source.fail = True  # type: ignore[attr-defined]
        outcome = collector.run_cycle()

        health = client.get("/health").json()
        response = client.get("/metrics")

    assert outcome.error is not None
    assert health["last_cycle"]["error"] == "ipmitool exited with status 1"
    assert response.status_code == 200
    assert "12.19" in response.text
    assert 'sensor_name="12V"' in response.text


def test_lifespan_stops_collector_and_clears_cache(collectors) -> None:
    app = create_app()
    with TestClient(app):
        collector = collectors["default"]
        assert collector.running

    assert not collector.running
    assert collectors == {}


def test_health_unavailable_without_running_collector(collectors) -> None:
    client = TestClient(create_app())

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["detail"] == "Sensor collection is not running."


def test_root_points_to_metrics(collectors) -> None:
    client = TestClient(create_app())

    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "detail": "See /metrics for sensor readings."}


def test_startup_fails_without_configuration(monkeypatch) -> None:
    for name in ("IPMI_HOST", "IPMI_USERNAME", "IPMI_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    build_default_collector.cache_clear()

    app = create_app()
    try:
        with pytest.raises(ConfigurationError):
            with TestClient(app):
                pass
    finally:
        build_default_collector.cache_clear()
        get_settings.cache_clear()
