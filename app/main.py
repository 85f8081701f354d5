from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.config import get_report_storage_settings, get_server_settings, get_upstream_settings
from app.connectors.sample_data_connector import SampleDataConnector
from app.repositories.state_repository import JsonStateStore
from app.scheduler.jobs import ReportScheduler, build_report_scheduler


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = get_server_settings().log_level.strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Load persisted state and start the report scheduler on boot; shut it down on exit."""
    logger = logging.getLogger(__name__)
    state = application.state
    get_report_storage_settings().report_dir.mkdir(parents=True, exist_ok=True)

    if state.state_store is None:
        state.state_store = JsonStateStore(get_report_storage_settings().data_dir)
        state.state_store.load()
    if state.connector is None:
        state.connector = SampleDataConnector(settings=get_upstream_settings())
    if state.report_scheduler is None:
        state.report_scheduler = build_report_scheduler(state.state_store)

    state.report_scheduler.start()
    logger.info("Report service ready")
    try:
        yield
    finally:
        state.report_scheduler.shutdown()


def create_app(
    *,
    state_store: JsonStateStore | None = None,
    report_scheduler: ReportScheduler | None = None,
    connector: SampleDataConnector | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators not passed in are built from environment settings when the
    lifespan starts.
    """

    _configure_logging()

    application = FastAPI(
        title="Insight Reports API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.state_store = state_store
    application.state.report_scheduler = report_scheduler
    application.state.connector = connector

    from app.api.routers import proxy_router, report_router

    application.include_router(report_router)
    application.include_router(proxy_router)

    application.mount(
        "/reports",
        StaticFiles(directory=str(get_report_storage_settings().report_dir), check_dir=False),
        name="reports",
    )

    @application.get("/health")
    def healthcheck() -> dict:
        return {"ok": True}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_server_settings().port)
