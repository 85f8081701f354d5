"""
tests/test_report_config.py

ReportConfig validation and JSON state persistence.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from app.repositories.state_repository import JsonStateStore
from app.schemas.report import Cadence, Delivery, Platform, ReportConfig, RunStatus


def _error_fields(exc: ValidationError) -> set[str]:
    return {str(error["loc"][0]) for error in exc.errors() if error["loc"]}


class TestReportConfig:
    def test_email_delivery_requires_email(self, make_config) -> None:
        with pytest.raises(ValidationError) as ctx:
            make_config(delivery="email")
        assert _error_fields(ctx.value) == {"email"}
        assert "Email is required when delivery = email" in str(ctx.value)

    def test_blank_email_counts_as_missing(self, make_config) -> None:
        with pytest.raises(ValidationError) as ctx:
            make_config(delivery="email", email="   ")
        assert _error_fields(ctx.value) == {"email"}

    def test_link_delivery_without_email_is_accepted(self, make_config) -> None:
        config = make_config(delivery="link")
        assert config.delivery == Delivery.LINK
        assert config.email is None

    def test_link_delivery_drops_email(self, make_config) -> None:
        assert make_config(delivery="link", email="ops@example.com").email is None

    def test_email_delivery_keeps_address(self, make_config) -> None:
        assert make_config(delivery="email", email="ops@example.com").email == "ops@example.com"

    def test_invalid_email_syntax(self, make_config) -> None:
        with pytest.raises(ValidationError) as ctx:
            make_config(delivery="email", email="not-an-address")
        assert _error_fields(ctx.value) == {"email"}

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"metrics": []}, "metrics"),
            ({"metrics": ["spend", " "]}, "metrics"),
            ({"level": ""}, "level"),
            ({"platform": "snapchat"}, "platform"),
            ({"dateRangeEnum": "last90"}, "dateRangeEnum"),
            ({"cadence": "weekly"}, "cadence"),
        ],
    )
    def test_field_errors_use_wire_names(self, make_config, overrides, field) -> None:
        with pytest.raises(ValidationError) as ctx:
            make_config(**overrides)
        assert field in _error_fields(ctx.value)

    def test_enum_wire_values(self, make_config) -> None:
        config = make_config(platform="tiktok", cadence="every 12 hours")
        assert config.platform == Platform.TIKTOK
        assert config.cadence == Cadence.EVERY_12_HOURS
        assert config.model_dump(mode="json", by_alias=True)["cadence"] == "every 12 hours"

    def test_snake_case_names_are_accepted(self) -> None:
        config = ReportConfig(
            platform=Platform.META,
            metrics=["spend"],
            level="ad",
            date_range_enum="last30",
            cadence=Cadence.MANUAL,
            delivery=Delivery.LINK,
        )
        assert config.date_range_enum.value == "last30"


class TestJsonStateStore:
    def test_empty_directory_loads_defaults(self, tmp_path) -> None:
        store = JsonStateStore(tmp_path)
        store.load()
        assert store.config is None
        assert store.status == RunStatus()

    def test_config_round_trips_through_disk(self, tmp_path, make_config) -> None:
        config = make_config(delivery="email", email="ops@example.com")
        JsonStateStore(tmp_path).save_config(config)

        written = json.loads((tmp_path / "config.json").read_text())
        assert written["dateRangeEnum"] == "last7"

        reloaded = JsonStateStore(tmp_path)
        reloaded.load()
        assert reloaded.config == config

    def test_status_updates_merge_fields(self, tmp_path) -> None:
        store = JsonStateStore(tmp_path)
        ran_at = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
        store.update_status(latest_report_url="http://reports.test/reports/a.html")
        store.update_status(last_run_at=ran_at, last_error="boom")
        store.update_status(last_error=None)

        assert store.status.latest_report_url == "http://reports.test/reports/a.html"
        assert store.status.last_run_at == ran_at
        assert store.status.last_error is None

        on_disk = json.loads((tmp_path / "status.json").read_text())
        assert on_disk["latestReportUrl"] == "http://reports.test/reports/a.html"
        assert on_disk["lastError"] is None

    def test_unknown_status_field_is_rejected(self, tmp_path) -> None:
        with pytest.raises(TypeError):
            JsonStateStore(tmp_path).update_status(latest_url="x")

    def test_legacy_public_url_key_is_read(self, tmp_path) -> None:
        (tmp_path / "status.json").write_text(json.dumps({"latestPublicUrl": "http://old/reports/r.html"}))
        store = JsonStateStore(tmp_path)
        store.load()
        assert store.status.latest_report_url == "http://old/reports/r.html"

    def test_corrupt_files_are_ignored(self, tmp_path) -> None:
        (tmp_path / "config.json").write_text("{not json")
        (tmp_path / "status.json").write_text(json.dumps({"lastRunAt": "yesterday"}))
        store = JsonStateStore(tmp_path)
        store.load()
        assert store.config is None
        assert store.status == RunStatus()
