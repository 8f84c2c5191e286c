from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

from models.records import SensorReading


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Exporter Status")
    echo_key_values(
        [
            ("host", payload.get("host")),
            ("state", payload.get("state")),
            ("running", payload.get("running")),
            ("interval_seconds", payload.get("interval_seconds")),
            ("cycles_completed", payload.get("cycles_completed")),
        ]
    )

    last_cycle = payload.get("last_cycle") or {}
    typer.echo()
    echo_heading("Last Cycle")
    if not last_cycle:
        typer.echo("No collection cycle has completed yet.")
        return
    echo_key_values(
        [
            ("cycle", last_cycle.get("cycle")),
            ("finished_at", last_cycle.get("finished_at")),
            ("duration_ms", last_cycle.get("duration_ms")),
            ("sensor_count", last_cycle.get("sensor_count")),
        ]
    )
    error = last_cycle.get("error")
    if error:
        typer.secho(f"error: {error}", fg=typer.colors.RED)


def render_readings(readings: Iterable[SensorReading]) -> None:
    items = list(readings)
    echo_heading(f"Sensor Readings ({len(items)})")
    if not items:
        typer.echo("No usable readings found.")
        return
    for reading in items:
        typer.echo(
            f"  - {reading.name} [{reading.id}] "
            f"{reading.quantity.value}: {reading.value:g} {reading.unit}"
        )
