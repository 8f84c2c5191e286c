"""Prometheus gauge families for IPMI sensor readings."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from models.records import Quantity, SensorReading

logger = logging.getLogger(__name__)

LABEL_NAMES = ("sensor_name", "sensor_id", "host")

METRIC_FAMILIES: Dict[Quantity, Tuple[str, str]] = {
    Quantity.voltage: ("ipmi_voltage_volts", "IPMI voltage sensor readings in volts"),
    Quantity.temperature: (
        "ipmi_temperature_celsius",
        "IPMI temperature sensor readings in celsius",
    ),
    Quantity.fan: ("ipmi_fan_speed_rpm", "IPMI fan speed sensor readings in RPM"),
    Quantity.power: ("ipmi_power_watts", "IPMI power sensor readings in watts"),
    Quantity.current: ("ipmi_current_amperes", "IPMI current sensor readings in amperes"),
}

PointKey = Tuple[str, str, str]


class MetricRegistry:
    """Latest-value gauges, one family per quantity, keyed by sensor and host.

    Writes overwrite and nothing is ever removed, so a sensor that drops out
    of the report keeps exporting its last value. Gauge children lock their
    own value, which makes concurrent writes and scrapes safe without an
    extra lock here.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauges: Dict[Quantity, Gauge] = {
            quantity: Gauge(name, documentation, LABEL_NAMES, registry=self.registry)
            for quantity, (name, documentation) in METRIC_FAMILIES.items()
        }

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def set_value(
        self, quantity: Quantity, sensor_name: str, sensor_id: str, host: str, value: float
    ) -> None:
        self._gauges[quantity].labels(sensor_name, sensor_id, host).set(value)

    def set_voltage(self, sensor_name: str, sensor_id: str, host: str, value: float) -> None:
        self.set_value(Quantity.voltage, sensor_name, sensor_id, host, value)

    def set_temperature(self, sensor_name: str, sensor_id: str, host: str, value: float) -> None:
        self.set_value(Quantity.temperature, sensor_name, sensor_id, host, value)

    def set_fan_speed(self, sensor_name: str, sensor_id: str, host: str, value: float) -> None:
        self.set_value(Quantity.fan, sensor_name, sensor_id, host, value)

    def set_power(self, sensor_name: str, sensor_id: str, host: str, value: float) -> None:
        self.set_value(Quantity.power, sensor_name, sensor_id, host, value)

    def set_current(self, sensor_name: str, sensor_id: str, host: str, value: float) -> None:
        self.set_value(Quantity.current, sensor_name, sensor_id, host, value)

    def update(self, readings: Iterable[SensorReading], host: str) -> int:
        """Write every reading under ``host`` and return the number of points set."""
        written = 0
        for reading in readings:
            self.set_value(reading.quantity, reading.name, reading.id, host, reading.value)
            written += 1
        return written

    def snapshot(self) -> Dict[Quantity, Dict[PointKey, float]]:
        """Return the current value of every point, grouped by quantity."""
        by_name = {name: quantity for quantity, (name, _doc) in METRIC_FAMILIES.items()}
        points: Dict[Quantity, Dict[PointKey, float]] = {
            quantity: {} for quantity in METRIC_FAMILIES
        }
        for family in self.registry.collect():
            quantity = by_name.get(family.name)
            if quantity is None:
                continue
            for sample in family.samples:
                key = tuple(sample.labels[label] for label in LABEL_NAMES)
                points[quantity][key] = sample.value  # type: ignore[index]
        return points

    def render(self) -> bytes:
        """Render all families in the Prometheus text exposition format."""
        return generate_latest(self.registry)
