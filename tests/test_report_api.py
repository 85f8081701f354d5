"""
tests/test_report_api.py

HTTP contract of the report API, exercised through FastAPI's TestClient.
Collaborators are injected so the lifespan (and its background scheduler)
never runs.
"""

from __future__ import annotations

import pytest
import requests
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi.testclient import TestClient

from app.main import create_app
from app.scheduler.jobs import ReportScheduler
from app.services.report_pipeline import ReportPipeline
from conftest import FIXED_NOW, PUBLIC_BASE, FakeResponse

VALID_CONFIG = {
    "platform": "meta",
    "metrics": ["spend", "conversions"],
    "level": "campaign",
    "dateRangeEnum": "last14",
    "cadence": "daily",
    "delivery": "link",
}


@pytest.fixture()
def make_client(make_connector, state_store, report_storage, sample_rows):
    def _make(*responses) -> tuple[TestClient, ReportScheduler]:
        connector, _ = make_connector(*(responses or (FakeResponse(200, {"rows": sample_rows}),)))
        pipeline = ReportPipeline(
            state_store=state_store,
            connector=connector,
            storage=report_storage,
            clock=lambda: FIXED_NOW,
        )
        report_scheduler = ReportScheduler(
            state_store=state_store,
            pipeline=pipeline,
            scheduler=BackgroundScheduler(timezone="UTC"),
            clock=lambda: FIXED_NOW,
        )
        application = create_app(
            state_store=state_store,
            report_scheduler=report_scheduler,
            connector=connector,
        )
        return TestClient(application), report_scheduler

    return _make


def test_health(make_client) -> None:
    client, _ = make_client()
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


class TestConfigEndpoints:
    def test_no_config_yet(self, make_client) -> None:
        client, _ = make_client()
        assert client.get("/api/config").json() == {"config": None}

    def test_save_config_arms_timer(self, make_client) -> None:
        client, report_scheduler = make_client()

        response = client.post("/api/config", json=VALID_CONFIG)

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["config"] == {**VALID_CONFIG, "email": None}
        assert len(report_scheduler.scheduler.get_jobs()) == 1
        assert client.get("/api/config").json()["config"]["dateRangeEnum"] == "last14"

    def test_email_delivery_without_email_is_a_field_error(self, make_client) -> None:
        client, _ = make_client()

        response = client.post("/api/config", json={**VALID_CONFIG, "delivery": "email"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["fieldErrors"] == {"email": ["Email is required when delivery = email"]}
        assert error["formErrors"] == []

    def test_several_invalid_fields(self, make_client) -> None:
        client, _ = make_client()

        response = client.post("/api/config", json={**VALID_CONFIG, "metrics": [], "cadence": "weekly"})

        assert response.status_code == 400
        assert set(response.json()["error"]["fieldErrors"]) == {"metrics", "cadence"}

    def test_non_object_body(self, make_client) -> None:
        client, _ = make_client()
        response = client.post("/api/config", json=["meta"])
        assert response.status_code == 400
        assert response.json()["error"]["formErrors"] == ["Expected a JSON object"]


class TestRunNow:
    def test_without_config(self, make_client) -> None:
        client, _ = make_client()
        response = client.post("/api/run-now")
        assert response.status_code == 400
        assert response.json() == {"error": "No config saved"}

    def test_success(self, make_client) -> None:
        client, _ = make_client()
        client.post("/api/config", json=VALID_CONFIG)

        response = client.post("/api/run-now")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["url"].startswith(f"{PUBLIC_BASE}/reports/report-")
        assert body["pdfUrl"] is None
        assert body["emailed"] is False
        assert body["lastRunAt"].startswith("2026-03-02T09:30:00")

        status = client.get("/api/status").json()
        assert status["status"]["latestReportUrl"] == body["url"]
        assert status["status"]["lastError"] is None
        assert status["config"]["platform"] == "meta"

    def test_upstream_failure_is_reported(self, make_client) -> None:
        client, _ = make_client(FakeResponse(422, text='{"error":"bad metric"}'))
        client.post("/api/config", json=VALID_CONFIG)

        response = client.post("/api/run-now")

        assert response.status_code == 500
        assert response.json() == {"error": 'Upstream meta 422: {"error":"bad metric"}'}
        assert client.get("/api/status").json()["status"]["lastError"] == response.json()["error"]


class TestProxy:
    def test_relays_success(self, make_client) -> None:
        client, _ = make_client(FakeResponse(200, {"data": [{"spend": 1}]}))
        response = client.post("/proxy/tiktok", json={"metrics": ["spend"]})
        assert response.status_code == 200
        assert response.json() == {"data": [{"spend": 1}]}

    def test_relays_upstream_error(self, make_client) -> None:
        client, _ = make_client(FakeResponse(401, {"message": "bad token"}))
        response = client.post("/proxy/meta", json={})
        assert response.status_code == 401
        assert response.json() == {"error": {"message": "bad token"}}

    def test_unreachable_upstream(self, make_client) -> None:
        client, _ = make_client(requests.ConnectionError("refused"))
        response = client.post("/proxy/meta", json={})
        assert response.status_code == 502
        assert "refused" in response.json()["error"]

    def test_unknown_platform(self, make_client) -> None:
        client, _ = make_client()
        assert client.post("/proxy/snapchat", json={}).status_code == 422
