"""Parsing of ``ipmitool sdr elist full`` sensor reports into typed readings."""

from __future__ import annotations

import logging
import string
from typing import Optional

from models.records import Classification, Quantity, SensorReading, SensorRecord

logger = logging.getLogger(__name__)

FIELD_DELIMITER = "|"
FIELD_COUNT = 5
OK_STATUS = "ok"
ABSENT_READING_MARKER = "No Reading"
_STATUS_CHARS = frozenset(string.ascii_letters + string.digits + "_")

# Checked in order; the first keyword found in the value text wins.
UNIT_KEYWORDS: tuple[tuple[str, str, Quantity], ...] = (
    ("Volts", "volts", Quantity.voltage),
    ("degrees C", "celsius", Quantity.temperature),
    ("RPM", "rpm", Quantity.fan),
    ("Watts", "watts", Quantity.power),
    ("Amps", "amperes", Quantity.current),
)


def _is_status_token(value: str) -> bool:
    return bool(value) and all(char in _STATUS_CHARS for char in value)


def parse_record(line: str) -> Optional[SensorRecord]:
    """Split one report line into its five columns.

    Returns ``None`` for anything that is not a sensor record: headers,
    footers, lines with more or fewer than five columns, lines whose name
    or value column is blank, and lines whose status is not a single word.
    The id and entity columns may hold only whitespace (yielding ``""``) but
    must not be empty, so ``||`` rejects the line.
    """
    raw_fields = line.split(FIELD_DELIMITER)
    if len(raw_fields) != FIELD_COUNT:
        return None
    if not raw_fields[1] or not raw_fields[3]:
        return None

    name, sensor_id, status, entity, value_text = (field.strip() for field in raw_fields)
    if not name or not value_text:
        return None
    if not _is_status_token(status):
        return None

    return SensorRecord(
        name=name,
        id=sensor_id,
        status=status,
        entity=entity,
        value_text=value_text,
    )


def classify_value(text: str) -> Optional[Classification]:
    """Infer numeric value, unit, and quantity from a value column.

    ``"12.240 Volts"`` classifies as ``(12.24, "volts", Quantity.voltage)``.
    Returns ``None`` when no unit keyword is present or the leading token
    is not a number.
    """
    candidate = text.strip()
    for keyword, unit, quantity in UNIT_KEYWORDS:
        if keyword not in candidate:
            continue
        tokens = candidate.split()
        try:
            value = float(tokens[0])
        except (IndexError, ValueError):
            return None
        return Classification(value=value, unit=unit, quantity=quantity)
    return None


def parse_report(text: str) -> list[SensorReading]:
    """Parse a full sensor report, dropping every line that is not a usable reading."""
    readings: list[SensorReading] = []

    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.strip()
        if not line:
            continue

        record = parse_record(line)
        if record is None:
            logger.debug(
                "Skipping non-sensor line",
                extra={"line_number": line_number, "reason": "malformed"},
            )
            continue

        if record.status != OK_STATUS:
            logger.debug(
                "Skipping sensor %r",
                record.name,
                extra={"line_number": line_number, "reason": f"status {record.status}"},
            )
            continue

        if ABSENT_READING_MARKER in record.value_text:
            logger.debug(
                "Skipping sensor %r",
                record.name,
                extra={"line_number": line_number, "reason": "no reading"},
            )
            continue

        classification = classify_value(record.value_text)
        if classification is None:
            logger.debug(
                "Skipping sensor %r",
                record.name,
                extra={"line_number": line_number, "reason": "unclassifiable value"},
            )
            continue

        readings.append(
            SensorReading(
                name=record.name,
                id=record.id,
                status=record.status,
                entity=record.entity,
                value=classification.value,
                unit=classification.unit,
                quantity=classification.quantity,
            )
        )

    return readings
