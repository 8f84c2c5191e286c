from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_readings, render_status
from services.parser import parse_report
from settings import ConfigurationError, get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Serve IPMI sensor readings as Prometheus metrics and inspect a running exporter.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Exporter base URL (defaults to EXPORTER_URL env or http://localhost:8080).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the exporter to respond.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    bind: str = typer.Option("0.0.0.0", "--bind", help="Address to listen on."),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to listen on (defaults to EXPORTER_PORT env or 8080).",
    ),
) -> None:
    """Start collecting from the configured host and serve /metrics."""
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    listen_port = port if port is not None else settings.exporter_port
    typer.echo(f"IPMI exporter for {settings.host} listening on {bind}:{listen_port}")
    uvicorn.run("app.main:app", host=bind, port=listen_port, log_config=None)


@app.command("parse")
def parse_command(
    report: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Saved output of 'ipmitool sdr elist full'.",
    ),
) -> None:
    """Parse a saved sensor report and print the readings it yields."""
    readings = parse_report(report.read_text(encoding="utf-8", errors="replace"))
    render_readings(readings)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the collector status of a running exporter."""
    state = _get_state(ctx)
    payload = state.client.get_status()
    render_status(payload)


@app.command("metrics")
def metrics_command(ctx: typer.Context) -> None:
    """Print the raw Prometheus exposition of a running exporter."""
    state = _get_state(ctx)
    typer.echo(state.client.get_metrics(), nl=False)
