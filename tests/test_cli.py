from __future__ import annotations

from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from services.acquisition import LoopCounters, LoopSummary
from services.supervisor import SupervisorReport


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.health_payload: Dict[str, Any] = {
            "status": "ok",
            "connections": {"COM3": "running", "COM4": "terminated"},
        }
        self.statistics_payload: List[Dict[str, Any]] = [
            {
                "connection_id": "COM3",
                "sensor_id": "TEMP",
                "count": 2,
                "total": 50.0,
                "average": 25.0,
                "observed_min": 20.0,
                "observed_max": 30.0,
                "lower_limit": 5.0,
                "upper_limit": 25.0,
            }
        ]
        self.closed = False

    def get_health(self) -> Dict[str, Any]:
        return self.health_payload

    def get_statistics(self) -> List[Dict[str, Any]]:
        return self.statistics_payload

    def close(self) -> None:
        self.closed = True


class StubSupervisor:
    def __init__(self, report: SupervisorReport) -> None:
        self.report = report
        self.ran = False

    def run(self) -> SupervisorReport:
        self.ran = True
        return self.report

    def stop(self) -> SupervisorReport:
        return self.report


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_client(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def _install_supervisor(monkeypatch, stub: StubSupervisor) -> list:
    captured: list = []

    def factory(settings):
        captured.append(settings)
        return stub

    monkeypatch.setattr("cli.app.build_supervisor", factory)
    monkeypatch.setattr("cli.app.configure_logging", lambda level=None: None)
    return captured


def test_status_command_renders_states_and_statistics(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_client(monkeypatch, stub)

    result = runner.invoke(app, ["status", "--base-url", "http://monitor:9000/"])

    assert result.exit_code == 0
    assert "COM3: running" in result.stdout
    assert "COM3/TEMP: count=2 avg=25.00 min=20.00 max=30.00 limits=5.00-25.00" in result.stdout
    assert stub.config.base_url == "http://monitor:9000"
    assert stub.closed is True


def test_status_command_without_readings(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    stub.statistics_payload = []
    _install_client(monkeypatch, stub)

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "No readings recorded yet." in result.stdout


def test_run_command_applies_overrides_and_reports(monkeypatch, runner: CliRunner, tmp_path) -> None:
    report = SupervisorReport(
        summaries=[
            LoopSummary(connection_id="ttyUSB0", connected=True, counters=LoopCounters(lines=3, accepted=2, alerts=1)),
            LoopSummary(connection_id="ttyUSB1", connected=False, error="unable to open serial port"),
        ]
    )
    stub = StubSupervisor(report)
    captured = _install_supervisor(monkeypatch, stub)
    log_path = tmp_path / "out.csv"

    result = runner.invoke(
        app,
        ["run", "-p", "ttyUSB0", "-p", "ttyUSB1", "--poll-interval", "0.5", "--log-path", str(log_path)],
    )

    assert result.exit_code == 0
    assert stub.ran is True
    settings = captured[0]
    assert settings.ports == ("ttyUSB0", "ttyUSB1")
    assert settings.poll_interval == 0.5
    assert settings.log_path == str(log_path)
    assert "ttyUSB0 (ran): accepted=2 alerts=1" in result.stdout
    assert "ttyUSB1 (not opened)" in result.stdout


def test_run_command_fails_when_no_connection_opens(monkeypatch, runner: CliRunner) -> None:
    report = SupervisorReport(
        summaries=[LoopSummary(connection_id="COM3", connected=False, error="unable to open serial port")]
    )
    _install_supervisor(monkeypatch, StubSupervisor(report))

    result = runner.invoke(app, ["run", "--port", "COM3"])

    assert result.exit_code == 1
    assert "COM3 (not opened)" in result.stdout
