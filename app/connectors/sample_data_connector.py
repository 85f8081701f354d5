"""
app/connectors/sample_data_connector.py

Connector for the ad-platform ``/sample-data/{platform}`` endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from app.config import UpstreamSettings
from app.connectors.base import BaseConnector, ConnectorRequestError, UpstreamResponse
from app.logging_utils import log_event
from app.mappers.row_extractor import extract_rows
from app.schemas.report import Platform, ReportConfig
from app.services.errors import UpstreamError

logger = logging.getLogger(__name__)

TIKTOK_DIMENSIONS = ["stat_time_day"]
META_TIME_INCREMENT = "7"


def build_payload(config: ReportConfig) -> dict[str, Any]:
    """
    Build the platform-specific request body.

    TikTok bodies never carry a report type: the upstream answers 422 to one
    of its values, so the key is left out rather than defaulted.
    """

    if config.platform == Platform.TIKTOK:
        return {
            "metrics": list(config.metrics),
            "dimensions": list(TIKTOK_DIMENSIONS),
            "level": config.level,
            "dateRangeEnum": config.date_range_enum.value,
        }
    return {
        "metrics": list(config.metrics),
        "level": config.level,
        "breakdowns": [],
        "timeIncrement": META_TIME_INCREMENT,
        "dateRangeEnum": config.date_range_enum.value,
    }


class SampleDataConnector(BaseConnector):
    """
    Fetches raw performance rows for the configured platform.
    """

    def __init__(
        self,
        *,
        settings: UpstreamSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="sample_data", settings=settings, session=session)

    def endpoint_url(self, platform: str) -> str:
        return f"{self._settings.base_url}/sample-data/{platform}"

    def fetch_rows(self, config: ReportConfig) -> list[Any]:
        platform = config.platform.value
        url = self.endpoint_url(platform)
        payload = build_payload(config)

        try:
            response = self._post_json(url=url, payload=payload)
        except ConnectorRequestError as exc:
            raise UpstreamError(platform, None, str(exc.__cause__ or exc)) from exc

        if not response.ok:
            body = self.body_as_text(response)
            log_event(
                logger,
                logging.ERROR,
                "upstream_rejected",
                platform=platform,
                stage="fetch",
                status=response.status_code,
                body=body,
            )
            raise UpstreamError(platform, response.status_code, body)

        rows = extract_rows(response.payload)
        log_event(
            logger,
            logging.INFO,
            "upstream_rows_fetched",
            platform=platform,
            stage="fetch",
            rows=len(rows),
        )
        return rows

    def forward(self, platform: str, payload: Any) -> UpstreamResponse:
        """
        Relay an arbitrary body to the sample-data endpoint; status is not judged.
        """

        return self._post_json(url=self.endpoint_url(platform), payload=payload)
