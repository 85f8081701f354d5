"""
app/api/dependencies.py

Shared FastAPI dependencies resolving process-wide collaborators from
``app.state``.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.connectors.sample_data_connector import SampleDataConnector
from app.repositories.state_repository import JsonStateStore
from app.scheduler.jobs import ReportScheduler


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service is not ready: {name} is not initialised.",
        )
    return value


def get_state_store(request: Request) -> JsonStateStore:
    return _from_state(request, "state_store")


def get_report_scheduler(request: Request) -> ReportScheduler:
    return _from_state(request, "report_scheduler")


def get_connector(request: Request) -> SampleDataConnector:
    return _from_state(request, "connector")
