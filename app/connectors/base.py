"""
app/connectors/base.py

Base connector abstraction and shared HTTP mechanics.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import requests

from app.config import UpstreamSettings
from app.logging_utils import log_event
from app.schemas.report import ReportConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamResponse:
    """
    Raw upstream reply: status code, decoded JSON (or text) and the body as sent.
    """

    status_code: int
    payload: Any
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ConnectorRequestError(RuntimeError):
    """
    Raised when the upstream cannot be reached at all (timeout, DNS, refused).
    """


class BaseConnector(ABC):
    """
    Connector interface for fetching ad-platform rows.

    Requests are sent once; there is no retry. Any failure surfaces to the
    caller within the configured timeout.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        settings: UpstreamSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._settings = settings
        self._session = session or requests.Session()
        self._timeout_seconds = settings.timeout_seconds

    @abstractmethod
    def fetch_rows(self, config: ReportConfig) -> list[Any]:
        """
        Fetch rows for ``config`` and return them as plain records.
        """

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            self._settings.auth_header_name: self._settings.api_token,
        }

    def _post_json(self, *, url: str, payload: Any) -> UpstreamResponse:
        """
        POST ``payload`` as JSON and return the reply without judging its status.

        The configured timeout bounds the connect and each read wait, not the
        whole exchange. An upstream that keeps trickling bytes can outlast it;
        an overall deadline would need a streamed read with a cutoff.
        """

        try:
            response = self._session.post(
                url,
                json=payload,
                headers=self._auth_headers(),
                timeout=self._timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            log_event(
                logger,
                logging.ERROR,
                "upstream_unreachable",
                source=self.source,
                url=url,
                error=str(exc),
            )
            raise ConnectorRequestError(f"{self.source}: {exc}") from exc
        except requests.RequestException as exc:
            raise ConnectorRequestError(f"{self.source}: {exc}") from exc

        text = response.text
        try:
            decoded: Any = response.json()
        except ValueError:
            decoded = text
        return UpstreamResponse(status_code=response.status_code, payload=decoded, text=text)

    @staticmethod
    def body_as_text(response: UpstreamResponse) -> str:
        """
        Body for diagnostics: the raw text, or serialized JSON when the text is empty.
        """

        if response.text:
            return response.text
        if isinstance(response.payload, str):
            return response.payload
        return json.dumps(response.payload, default=str)
