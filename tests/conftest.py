"""
Shared fixtures: report configurations, a scripted HTTP session and a
state store rooted in a temporary directory.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import pytest

from app.config import UpstreamSettings
from app.connectors.sample_data_connector import SampleDataConnector
from app.repositories.report_repository import LocalReportStorage
from app.repositories.state_repository import JsonStateStore
from app.schemas.report import ReportConfig

FIXED_NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
PUBLIC_BASE = "http://reports.test"


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._body = body
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text

    def json(self) -> Any:
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeSession:
    """
    Stand-in for ``requests.Session`` returning scripted responses in order.
    """

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, *, json: Any = None, headers: dict | None = None, timeout: float | None = None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if not self._responses:
            raise AssertionError(f"Unexpected upstream call to {url}")
        response = self._responses[0] if len(self._responses) == 1 else self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def make_config():
    def _make(**overrides: Any) -> ReportConfig:
        payload = {
            "platform": "meta",
            "metrics": ["spend", "conversions"],
            "level": "campaign",
            "dateRangeEnum": "last7",
            "cadence": "daily",
            "delivery": "link",
        }
        payload.update(overrides)
        return ReportConfig.model_validate(payload)

    return _make


@pytest.fixture()
def upstream_settings() -> UpstreamSettings:
    return UpstreamSettings(
        base_url="https://upstream.test",
        api_token="test-token",
        auth_header_name="Authorization",
        timeout_seconds=30.0,
    )


@pytest.fixture()
def make_connector(upstream_settings):
    def _make(*responses: Any) -> tuple[SampleDataConnector, FakeSession]:
        session = FakeSession(*responses)
        return SampleDataConnector(settings=upstream_settings, session=session), session

    return _make


@pytest.fixture()
def state_store(tmp_path) -> JsonStateStore:
    store = JsonStateStore(tmp_path / "data")
    store.load()
    return store


@pytest.fixture()
def report_storage(tmp_path) -> LocalReportStorage:
    return LocalReportStorage(tmp_path / "reports", PUBLIC_BASE)


@pytest.fixture()
def sample_rows() -> list[dict[str, Any]]:
    return [
        {"date_start": "2026-02-23", "spend": "100", "conversions": 10},
        {"date_start": "2026-02-24", "spend": "120", "conversions": 12},
        {"date_start": "2026-02-25", "spend": "150", "conversions": 11},
    ]
