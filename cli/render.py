from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

from services.supervisor import SupervisorReport


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return "-" if value is None else str(value)


def render_status(health: Dict[str, Any], statistics: List[Dict[str, Any]]) -> None:
    echo_heading("Connections")
    connections = health.get("connections") or {}
    if connections:
        echo_key_values(sorted(connections.items()))
    else:
        typer.echo("No connections configured.")

    typer.echo()
    echo_heading("Statistics")
    if not statistics:
        typer.echo("No readings recorded yet.")
        return
    for entry in statistics:
        typer.echo(
            f"  - {entry.get('connection_id')}/{entry.get('sensor_id')}: "
            f"count={entry.get('count')} avg={_fmt(entry.get('average'))} "
            f"min={_fmt(entry.get('observed_min'))} max={_fmt(entry.get('observed_max'))} "
            f"limits={_fmt(entry.get('lower_limit'))}-{_fmt(entry.get('upper_limit'))}"
        )


def render_report(report: SupervisorReport) -> None:
    echo_heading("Acquisition Summary")
    if not report.summaries:
        typer.echo("No connections configured.")
        return
    for summary in report.summaries:
        counters = summary.counters
        status = "ran" if summary.connected else "not opened"
        line = (
            f"  - {summary.connection_id} ({status}): accepted={counters.accepted} "
            f"alerts={counters.alerts} parse_failures={counters.parse_failures} "
            f"validation_failures={counters.validation_failures} "
            f"log_failures={counters.log_failures}"
        )
        if summary.error:
            line += f" error={summary.error}"
        typer.echo(line)
