"""
app/services/report_pipeline.py

One report run, end to end:

    fetch -> extract -> analyze -> chart -> narrate -> render -> persist -> deliver

Stages run strictly in order. Chart, narrative and PDF failures degrade
inside their stage; fetch, storage and delivery failures propagate to the
caller, which records them in the run status.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from app.connectors.sample_data_connector import SampleDataConnector
from app.domain.report import ReportRunResult
from app.logging_utils import log_event
from app.repositories.report_repository import LocalReportStorage
from app.repositories.state_repository import JsonStateStore
from app.schemas.report import Delivery, ReportConfig
from app.services.analyzer import ReportAnalyzer
from app.services.chart_service import ChartGenerator
from app.services.email_service import EmailAttachment, SmtpEmailSender
from app.services.errors import DeliveryConfigError, PdfRenderError
from app.services.narrative_service import NarrativeService
from app.services.pdf_service import PdfRenderer
from app.services.report_renderer import ReportRenderer, format_report_date, report_title

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def email_subject(config: ReportConfig, generated_at: datetime) -> str:
    return f"{config.platform.value.upper()} Insight Report - {generated_at:%Y-%m-%d}"


def pdf_attachment_name(config: ReportConfig, generated_at: datetime) -> str:
    return f"{config.platform.value}-insight-report-{generated_at:%Y-%m-%d}.pdf"


class ReportPipeline:
    """
    Runs the report stages with injected collaborators.

    ``pdf_renderer`` and ``email_sender`` are optional: without a PDF
    renderer runs produce HTML only, and without a sender email delivery
    fails with :class:`DeliveryConfigError` after the report is saved.
    """

    def __init__(
        self,
        *,
        state_store: JsonStateStore,
        connector: SampleDataConnector,
        storage: LocalReportStorage,
        analyzer: ReportAnalyzer | None = None,
        chart_generator: ChartGenerator | None = None,
        narrative_service: NarrativeService | None = None,
        renderer: ReportRenderer | None = None,
        pdf_renderer: PdfRenderer | None = None,
        email_sender: SmtpEmailSender | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._state_store = state_store
        self._connector = connector
        self._storage = storage
        self._analyzer = analyzer or ReportAnalyzer()
        self._chart_generator = chart_generator or ChartGenerator()
        self._narrative_service = narrative_service or NarrativeService()
        self._renderer = renderer or ReportRenderer()
        self._pdf_renderer = pdf_renderer
        self._email_sender = email_sender
        self._clock = clock

    def run(self, config: ReportConfig) -> ReportRunResult:
        platform = config.platform.value
        generated_at = self._clock()

        rows = self._connector.fetch_rows(config)
        analysis = self._analyzer.analyze(rows, config)
        charts = self._chart_generator.render_all(analysis)
        narrative = self._narrative_service.narrate(analysis, config)
        log_event(
            logger,
            logging.INFO,
            "report_composed",
            platform=platform,
            rows=analysis.row_count,
            charts_planned=len(analysis.recommended_charts),
            charts_rendered=len(charts),
            narrative=narrative.source,
        )

        html = self._renderer.render(config, analysis, charts, narrative, generated_at)
        stem = self._storage.new_run_stem(generated_at)
        html_report = self._storage.save(f"{stem}.html", html.encode("utf-8"))

        pdf_bytes = self._render_pdf(html, config, generated_at)
        pdf_url = None
        if pdf_bytes is not None:
            pdf_url = self._storage.save(f"{stem}.pdf", pdf_bytes).url

        status_fields = {"latest_report_url": html_report.url}
        if pdf_url is not None:
            status_fields["latest_pdf_url"] = pdf_url
        self._state_store.update_status(**status_fields)
        log_event(
            logger,
            logging.INFO,
            "report_saved",
            platform=platform,
            stage="persist",
            url=html_report.url,
            pdf_url=pdf_url,
        )

        emailed = False
        if config.delivery == Delivery.EMAIL:
            self._deliver(config, html, pdf_bytes, generated_at)
            emailed = True

        return ReportRunResult(
            html_url=html_report.url,
            pdf_url=pdf_url,
            emailed=emailed,
            charts_rendered=len(charts),
            row_count=analysis.row_count,
            totals=dict(analysis.totals),
        )

    def _render_pdf(self, html: str, config: ReportConfig, generated_at: datetime) -> bytes | None:
        if self._pdf_renderer is None or not self._pdf_renderer.enabled:
            return None
        try:
            return self._pdf_renderer.render(
                html,
                title=report_title(config),
                generated_on=format_report_date(generated_at),
            )
        except PdfRenderError as exc:
            log_event(
                logger,
                logging.WARNING,
                "pdf_render_failed",
                platform=config.platform.value,
                stage="render",
                error=str(exc),
            )
            return None

    def _deliver(
        self,
        config: ReportConfig,
        html: str,
        pdf_bytes: bytes | None,
        generated_at: datetime,
    ) -> None:
        if not config.email:
            raise DeliveryConfigError("Email recipient is missing")
        if self._email_sender is None:
            raise DeliveryConfigError("Email delivery is not configured")

        attachments = []
        if pdf_bytes is not None:
            attachments.append(
                EmailAttachment(filename=pdf_attachment_name(config, generated_at), content=pdf_bytes)
            )
        self._email_sender.send(
            to=config.email,
            subject=email_subject(config, generated_at),
            html=html,
            attachments=attachments,
        )
