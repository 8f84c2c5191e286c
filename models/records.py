"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Quantity(str, Enum):
    """Physical quantity a sensor reading measures."""

    voltage = "voltage"
    temperature = "temperature"
    fan = "fan"
    power = "power"
    current = "current"


@dataclass(frozen=True, slots=True)
class SensorRecord:
    """The five pipe-delimited columns of one ``sdr elist full`` line."""

    name: str
    id: str
    status: str
    entity: str
    value_text: str


@dataclass(frozen=True, slots=True)
class Classification:
    value: float
    unit: str
    quantity: Quantity


@dataclass(slots=True)
class SensorReading:
    """A single typed sensor reading parsed from a sensor report."""

    name: str
    id: str
    status: str
    entity: str
    value: float
    unit: str
    quantity: Quantity
