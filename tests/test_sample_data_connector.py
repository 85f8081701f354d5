from __future__ import annotations

import unittest

import pytest
import requests

from app.config import UpstreamSettings
from app.connectors.sample_data_connector import SampleDataConnector, build_payload
from app.services.errors import UpstreamError
from conftest import FakeResponse, FakeSession


class TestBuildPayload:
    def test_tiktok_body_has_dimensions_and_no_report_type(self, make_config) -> None:
        payload = build_payload(make_config(platform="tiktok", metrics=["spend", "clicks"], level="AUCTION_AD"))
        assert payload == {
            "metrics": ["spend", "clicks"],
            "dimensions": ["stat_time_day"],
            "level": "AUCTION_AD",
            "dateRangeEnum": "last7",
        }
        assert "reportType" not in payload

    def test_meta_body_has_breakdowns_and_weekly_increment(self, make_config) -> None:
        payload = build_payload(make_config(platform="meta", dateRangeEnum="last30"))
        assert payload == {
            "metrics": ["spend", "conversions"],
            "level": "campaign",
            "breakdowns": [],
            "timeIncrement": "7",
            "dateRangeEnum": "last30",
        }


class TestFetchRows:
    def test_posts_with_raw_token_header(self, make_config, make_connector) -> None:
        connector, session = make_connector(FakeResponse(200, {"data": [{"spend": "3"}]}))
        rows = connector.fetch_rows(make_config(platform="tiktok"))

        assert rows == [{"spend": "3"}]
        call = session.calls[0]
        assert call["url"] == "https://upstream.test/sample-data/tiktok"
        assert call["headers"]["Authorization"] == "test-token"
        assert call["timeout"] == 30.0

    def test_non_2xx_carries_status_and_raw_body(self, make_config, make_connector) -> None:
        connector, _ = make_connector(FakeResponse(422, text='{"error":"bad metric"}'))
        with pytest.raises(UpstreamError) as ctx:
            connector.fetch_rows(make_config())

        assert ctx.value.status == 422
        assert ctx.value.body == '{"error":"bad metric"}'
        assert str(ctx.value) == 'Upstream meta 422: {"error":"bad metric"}'

    def test_timeout_is_an_upstream_error_without_status(self, make_config, make_connector) -> None:
        connector, _ = make_connector(requests.Timeout("read timed out"))
        with pytest.raises(UpstreamError) as ctx:
            connector.fetch_rows(make_config())
        assert ctx.value.status is None
        assert "request failed" in str(ctx.value)

    def test_non_json_success_body_yields_no_rows(self, make_config, make_connector) -> None:
        connector, _ = make_connector(FakeResponse(200, text="<html>maintenance</html>"))
        assert connector.fetch_rows(make_config()) == []


class TestForward(unittest.TestCase):
    def test_forward_does_not_judge_status(self) -> None:
        session = FakeSession(FakeResponse(401, {"error": "unauthorized"}))
        connector = SampleDataConnector(
            settings=UpstreamSettings(base_url="https://upstream.test", api_token="t"),
            session=session,
        )
        response = connector.forward("meta", {"metrics": ["spend"]})

        self.assertFalse(response.ok)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.payload, {"error": "unauthorized"})
        self.assertEqual(session.calls[0]["json"], {"metrics": ["spend"]})
