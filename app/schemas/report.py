"""
app/schemas/report.py

Persisted and API-facing models: the active report configuration and the
run status record.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class Platform(str, Enum):
    META = "meta"
    TIKTOK = "tiktok"


class DateRange(str, Enum):
    LAST_7 = "last7"
    LAST_14 = "last14"
    LAST_30 = "last30"


class Cadence(str, Enum):
    MANUAL = "manual"
    HOURLY = "hourly"
    EVERY_12_HOURS = "every 12 hours"
    DAILY = "daily"


class Delivery(str, Enum):
    EMAIL = "email"
    LINK = "link"


class ReportConfig(BaseModel):
    """
    The single active report configuration.

    Replaced wholesale on every save. ``email`` is present exactly when
    ``delivery`` is ``email``; for link delivery it is always ``None``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    platform: Platform
    metrics: list[str] = Field(min_length=1)
    level: str = Field(min_length=1)
    date_range_enum: DateRange
    cadence: Cadence
    delivery: Delivery
    email: EmailStr | None = Field(default=None, validate_default=True)

    @field_validator("metrics")
    @classmethod
    def _metrics_not_blank(cls, value: list[str]) -> list[str]:
        cleaned = [metric.strip() for metric in value]
        if any(not metric for metric in cleaned):
            raise ValueError("Metric names must be non-empty")
        return cleaned

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email")
    @classmethod
    def _email_matches_delivery(cls, value: str | None, info: ValidationInfo) -> str | None:
        delivery = info.data.get("delivery")
        if delivery is None:
            return value
        if delivery == Delivery.EMAIL:
            if not value:
                raise ValueError("Email is required when delivery = email")
            return value
        return None


class RunStatus(BaseModel):
    """
    Progress record for scheduled and on-demand runs.

    Updated by merging individual fields, never replaced wholesale.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    last_error: str | None = None
    latest_report_url: str | None = None
    latest_pdf_url: str | None = None

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def config_to_payload(config: ReportConfig | None) -> dict | None:
    if config is None:
        return None
    return config.model_dump(mode="json", by_alias=True)
