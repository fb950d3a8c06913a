from __future__ import annotations

import dataclasses
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import load_config
from cli.render import render_report, render_status
from logging_config import configure_logging
from services.supervisor import build_supervisor
from settings import get_settings

app = typer.Typer(
    help="Acquire, validate and monitor readings from serial sensor connections.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main() -> None:
    """Entry point for the CLI."""


@app.command("run")
def run_command(
    ports: Optional[List[str]] = typer.Option(
        None,
        "--port",
        "-p",
        help="Serial port to acquire from; repeat for several (defaults to SENSOR_PORTS).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        min=0.01,
        help="Seconds to pause between reads on each connection.",
    ),
    log_path: Optional[str] = typer.Option(
        None,
        "--log-path",
        help="CSV file that accepted readings are appended to.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Acquire from every port until all connections terminate."""
    configure_logging(log_level.upper() if log_level else None)

    overrides = {}
    if ports:
        overrides["ports"] = tuple(ports)
    if poll_interval is not None:
        overrides["poll_interval"] = poll_interval
    if log_path:
        overrides["log_path"] = log_path
    settings = dataclasses.replace(get_settings(), **overrides)

    supervisor = build_supervisor(settings)
    typer.echo(f"Monitoring {', '.join(settings.ports)} -> {settings.log_path}")
    try:
        report = supervisor.run()
    except KeyboardInterrupt:
        typer.echo("Interrupted, stopping acquisition loops ...")
        report = supervisor.stop()

    typer.echo()
    render_report(report)
    if report.exit_code:
        typer.secho("No connection could be opened.", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=report.exit_code)


@app.command("status")
def status_command(
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Status API base URL (defaults to MONITOR_API_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the status API.",
    ),
) -> None:
    """Show connection states and running statistics from a live monitor."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    try:
        health = client.get_health()
        statistics = client.get_statistics()
    finally:
        client.close()
    render_status(health, statistics)
