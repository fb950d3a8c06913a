"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AlertEntry,
    DiagnosticEntry,
    DiagnosticsResponse,
    HealthResponse,
    StatisticsEntry,
)
from models.records import SensorKey
from services.supervisor import Supervisor, build_default_supervisor

router = APIRouter()


def get_supervisor() -> Supervisor:
    return build_default_supervisor()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check with per-connection loop state.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    supervisor: Supervisor = Depends(get_supervisor),
) -> HealthResponse:
    states = supervisor.connection_states()
    return HealthResponse(
        connections={name: state.value for name, state in states.items()},
    )


@router.get(
    "/statistics",
    response_model=list[StatisticsEntry],
    summary="Running statistics for every observed sensor.",
)
async def list_statistics(
    supervisor: Supervisor = Depends(get_supervisor),
) -> list[StatisticsEntry]:
    return [StatisticsEntry.from_snapshot(entry) for entry in supervisor.monitor.snapshot()]


@router.get(
    "/statistics/{connection_id}/{sensor_id}",
    response_model=StatisticsEntry,
    summary="Running statistics for one connection and sensor.",
)
async def get_statistics(
    connection_id: str,
    sensor_id: str,
    supervisor: Supervisor = Depends(get_supervisor),
) -> StatisticsEntry:
    snapshot = supervisor.monitor.statistics(SensorKey(connection_id, sensor_id))
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No readings recorded for sensor {sensor_id!r} on {connection_id!r}.",
        )
    return StatisticsEntry.from_snapshot(snapshot)


@router.get(
    "/alerts",
    response_model=list[AlertEntry],
    summary="Most recent out-of-range alerts, oldest first.",
)
async def list_alerts(
    limit: int = Query(50, ge=1, le=1000),
    supervisor: Supervisor = Depends(get_supervisor),
) -> list[AlertEntry]:
    return [AlertEntry.from_alert(alert) for alert in supervisor.recorder.recent_alerts(limit)]


@router.get(
    "/diagnostics",
    response_model=DiagnosticsResponse,
    summary="Failure counts by kind and the most recent failures.",
)
async def list_diagnostics(
    limit: int = Query(50, ge=1, le=1000),
    supervisor: Supervisor = Depends(get_supervisor),
) -> DiagnosticsResponse:
    recorder = supervisor.recorder
    return DiagnosticsResponse(
        counts=recorder.diagnostic_counts(),
        recent=[DiagnosticEntry.from_event(event) for event in recorder.recent_diagnostics(limit)],
    )


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for connection status."}
