"""
app/api/routers/report_router.py

Configuration, on-demand run and status endpoints.

Handlers only validate input and translate outcomes to HTTP; the work is
done by the report scheduler and state store.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.dependencies import get_report_scheduler, get_state_store
from app.repositories.errors import StateStoreError
from app.repositories.state_repository import JsonStateStore
from app.scheduler.jobs import ReportScheduler
from app.schemas.report import ReportConfig, config_to_payload
from app.services.errors import ConfigMissingError, ReportRunError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])

_VALUE_ERROR_PREFIX = "Value error, "


def flatten_validation_error(exc: ValidationError) -> dict[str, Any]:
    """
    ``{"fieldErrors": {field: [messages]}, "formErrors": [messages]}``.
    """

    field_errors: dict[str, list[str]] = {}
    form_errors: list[str] = []
    for error in exc.errors():
        message = error.get("msg", "Invalid value")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        loc = error.get("loc") or ()
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(message)
        else:
            form_errors.append(message)
    return {"fieldErrors": field_errors, "formErrors": form_errors}


def _error(status_code: int, error: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error})


@router.get("/config")
def get_config(state_store: JsonStateStore = Depends(get_state_store)) -> dict:
    return {"config": config_to_payload(state_store.config)}


@router.post("/config")
def save_config(
    payload: Any = Body(default=None),
    report_scheduler: ReportScheduler = Depends(get_report_scheduler),
):
    """
    Validate and replace the active configuration, then re-arm the timer.
    """

    if not isinstance(payload, dict):
        return _error(
            status.HTTP_400_BAD_REQUEST,
            {"fieldErrors": {}, "formErrors": ["Expected a JSON object"]},
        )

    try:
        config = ReportConfig.model_validate(payload)
    except ValidationError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, flatten_validation_error(exc))

    try:
        report_scheduler.apply_config(config)
    except StateStoreError as exc:
        logger.error("Failed to persist configuration: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    return {"ok": True, "config": config_to_payload(config)}


@router.post("/run-now")
def run_now(report_scheduler: ReportScheduler = Depends(get_report_scheduler)):
    try:
        result = report_scheduler.run_now()
    except ConfigMissingError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    except ReportRunError as exc:
        last_error = report_scheduler.state_store.status.last_error or str(exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, last_error)

    current = report_scheduler.state_store.status.to_payload()
    return {
        "ok": True,
        "lastRunAt": current["lastRunAt"],
        "url": result.html_url,
        "pdfUrl": result.pdf_url,
        "emailed": result.emailed,
    }


@router.get("/status")
def get_status(state_store: JsonStateStore = Depends(get_state_store)) -> dict:
    return {
        "status": state_store.status.to_payload(),
        "config": config_to_payload(state_store.config),
    }
