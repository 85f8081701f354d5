"""
app/scheduler/jobs.py

APScheduler-based recurring report job.

Schedule
--------
One interval job, id ``insight_report``, armed from the active
configuration's cadence:

  manual          no job
  hourly          every hour
  every 12 hours  every 12 hours
  daily           every 24 hours

Lifecycle
---------
Call ``build_report_scheduler()`` once, ``start()`` it on app boot and
``shutdown()`` it on exit; the FastAPI ``lifespan`` in main.py does both.
Saving a configuration goes through ``apply_config()``, which removes any
existing job before arming a new one, so at most one timer is ever live.

Status
------
Both the timer tick and ``run_now()`` record ``lastRunAt`` when an attempt
completes, clear ``lastError`` on success and set it on failure.
``nextRunAt`` is recomputed after every tick and every reschedule.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import (
    get_email_settings,
    get_llm_settings,
    get_pdf_settings,
    get_report_storage_settings,
    get_upstream_settings,
)
from app.connectors.sample_data_connector import SampleDataConnector
from app.domain.report import ReportRunResult
from app.logging_utils import log_event
from app.repositories.report_repository import LocalReportStorage
from app.repositories.state_repository import JsonStateStore
from app.schemas.report import Cadence, ReportConfig
from app.services.email_service import SmtpEmailSender
from app.services.errors import ConfigMissingError, ReportRunError
from app.services.narrative_service import NarrativeService
from app.services.pdf_service import PdfRenderer
from app.services.report_pipeline import Clock, ReportPipeline, utc_now
from llm_synthesis.adapter import build_llm_adapter

logger = logging.getLogger(__name__)

JOB_ID = "insight_report"

_CADENCE_INTERVALS: dict[Cadence, timedelta] = {
    Cadence.HOURLY: timedelta(hours=1),
    Cadence.EVERY_12_HOURS: timedelta(hours=12),
    Cadence.DAILY: timedelta(hours=24),
}


def cadence_interval(cadence: Cadence) -> timedelta | None:
    """Timer interval for ``cadence``; ``None`` for manual."""
    return _CADENCE_INTERVALS.get(cadence)


def compute_next_run(cadence: Cadence, now: datetime) -> datetime | None:
    """
    Next fire time for a timer armed at ``now``. Pure; ``None`` for manual.
    """
    interval = cadence_interval(cadence)
    if interval is None:
        return None
    return now + interval


class ReportScheduler:
    """
    Owns the single recurring report job and the status updates around runs.
    """

    def __init__(
        self,
        *,
        state_store: JsonStateStore,
        pipeline: ReportPipeline,
        scheduler: BackgroundScheduler | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._state_store = state_store
        self._pipeline = pipeline
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._clock = clock

    @property
    def scheduler(self) -> BackgroundScheduler:
        return self._scheduler

    @property
    def state_store(self) -> JsonStateStore:
        return self._state_store

    def start(self) -> None:
        """Start the backend and arm the job from the persisted configuration."""
        if not self._scheduler.running:
            self._scheduler.start()
        self.reschedule()
        logger.info("Report scheduler started with %d job(s)", len(self._scheduler.get_jobs()))

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Report scheduler shut down")

    def apply_config(self, config: ReportConfig) -> None:
        """
        Persist a new configuration and re-arm the timer for its cadence.
        """

        self._state_store.save_config(config)
        self._state_store.update_status(last_error=None)
        self.reschedule()

    def reschedule(self) -> datetime | None:
        """
        Cancel any live job, arm a new one for the active cadence, and
        persist ``nextRunAt``. Returns the next fire time, or ``None``.
        """

        if self._scheduler.get_job(JOB_ID) is not None:
            self._scheduler.remove_job(JOB_ID)

        config = self._state_store.config
        interval = cadence_interval(config.cadence) if config is not None else None
        if interval is None:
            self._state_store.update_status(next_run_at=None)
            logger.info("Report job idle (no config or manual cadence)")
            return None

        next_run = compute_next_run(config.cadence, self._clock())
        self._scheduler.add_job(
            self.run_scheduled,
            trigger=IntervalTrigger(seconds=int(interval.total_seconds()), timezone="UTC"),
            id=JOB_ID,
            name="Scheduled insight report",
            next_run_time=next_run,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._state_store.update_status(next_run_at=next_run)
        logger.info(
            "Report job armed cadence=%s next_run_at=%s",
            config.cadence.value,
            next_run.isoformat(),
        )
        return next_run

    def run_scheduled(self) -> None:
        """
        Timer tick. Never raises; failures are recorded in the status.
        """

        config = self._state_store.config
        try:
            if config is None:
                logger.warning("Scheduled tick with no configuration; skipping")
                return
            self._execute(config, trigger="schedule")
        except ReportRunError:
            # Already recorded in status by _execute.
            pass
        finally:
            self._refresh_next_run()

    def run_now(self) -> ReportRunResult:
        """
        Run outside the timer. Raises :class:`ConfigMissingError` without a
        config and :class:`ReportRunError` when the run fails.
        """

        config = self._state_store.config
        if config is None:
            raise ConfigMissingError("No config saved")
        return self._execute(config, trigger="manual")

    def _execute(self, config: ReportConfig, *, trigger: str) -> ReportRunResult:
        log_event(
            logger,
            logging.INFO,
            "report_run_started",
            platform=config.platform.value,
            trigger=trigger,
        )
        try:
            result = self._pipeline.run(config)
        except Exception as exc:
            error = exc if isinstance(exc, ReportRunError) else ReportRunError(str(exc))
            self._state_store.update_status(last_run_at=self._clock(), last_error=str(error))
            log_event(
                logger,
                logging.ERROR,
                "report_run_failed",
                platform=config.platform.value,
                trigger=trigger,
                error_type=type(exc).__name__,
                error=str(error),
            )
            if error is exc:
                raise
            raise error from exc

        self._state_store.update_status(last_run_at=self._clock(), last_error=None)
        log_event(
            logger,
            logging.INFO,
            "report_run_succeeded",
            platform=config.platform.value,
            trigger=trigger,
            url=result.html_url,
            pdf_url=result.pdf_url,
            emailed=result.emailed,
        )
        return result

    def _refresh_next_run(self) -> None:
        """
        Publish the armed timer's fire time. Reads the config again so a
        save made while a run was in flight is not overwritten.
        """

        config = self._state_store.config
        job = self._scheduler.get_job(JOB_ID)
        if config is None or job is None or cadence_interval(config.cadence) is None:
            next_run = None
        else:
            next_run = getattr(job, "next_run_time", None) or compute_next_run(config.cadence, self._clock())
        self._state_store.update_status(next_run_at=next_run)


def build_report_pipeline(state_store: JsonStateStore) -> ReportPipeline:
    """
    Wire the pipeline from environment settings.
    """

    storage_settings = get_report_storage_settings()
    return ReportPipeline(
        state_store=state_store,
        connector=SampleDataConnector(settings=get_upstream_settings()),
        storage=LocalReportStorage(storage_settings.report_dir, storage_settings.public_base_url),
        narrative_service=NarrativeService(adapter=build_llm_adapter(get_llm_settings())),
        pdf_renderer=PdfRenderer(enabled=get_pdf_settings().enabled),
        email_sender=SmtpEmailSender(get_email_settings()),
    )


def build_report_scheduler(state_store: JsonStateStore) -> ReportScheduler:
    """
    Build the report scheduler with a UTC ``BackgroundScheduler``.

    The returned scheduler is NOT started; call ``start()`` after loading state.
    """

    return ReportScheduler(
        state_store=state_store,
        pipeline=build_report_pipeline(state_store),
        scheduler=BackgroundScheduler(timezone="UTC"),
    )
