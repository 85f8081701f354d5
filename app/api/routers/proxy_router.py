"""
app/api/routers/proxy_router.py

Pass-through to the upstream sample-data endpoint, used by the dashboard to
preview rows with the server-held credential.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse, Response

from app.api.dependencies import get_connector
from app.connectors.base import ConnectorRequestError
from app.connectors.sample_data_connector import SampleDataConnector
from app.schemas.report import Platform

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proxy", tags=["proxy"])


@router.post("/{platform}")
def proxy_sample_data(
    platform: Platform,
    payload: Any = Body(default=None),
    connector: SampleDataConnector = Depends(get_connector),
):
    try:
        upstream = connector.forward(platform.value, payload)
    except ConnectorRequestError as exc:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": str(exc)})

    if not upstream.ok:
        logger.warning("Proxy upstream %s returned %d", platform.value, upstream.status_code)
        return JSONResponse(
            status_code=upstream.status_code,
            content={"error": upstream.payload if upstream.payload != "" else upstream.text},
        )
    if isinstance(upstream.payload, str):
        return Response(content=upstream.text, status_code=upstream.status_code, media_type="text/plain")
    return JSONResponse(status_code=upstream.status_code, content=upstream.payload)
