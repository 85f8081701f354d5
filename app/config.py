"""
app/config.py

Application-level configuration helpers.

Every setting is read from the process environment (optionally seeded from
``.env`` / ``.env.local`` at the project root) and exposed as a frozen
dataclass behind a cached getter.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    for filename in (".env", ".env.local"):
        env_path = PROJECT_ROOT / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class UpstreamSettings:
    """
    Ad-platform sample-data API settings.

    The token is sent verbatim under ``auth_header_name``; no scheme prefix
    is added.
    """

    base_url: str = "https://bizdev.newform.ai"
    api_token: str = "NEWFORMCODINGCHALLENGE"
    auth_header_name: str = "Authorization"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ReportStorageSettings:
    """
    Where generated reports and persisted state live.
    """

    report_dir: Path = PROJECT_ROOT / "reports"
    data_dir: Path = PROJECT_ROOT / "data"
    public_base_url: str = "http://localhost:4000"


@dataclass(frozen=True)
class LLMSettings:
    """
    Language-model narrative settings.
    """

    adapter: str = "openai"
    api_key: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 1200
    base_url: str | None = None
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class EmailSettings:
    """
    SMTP delivery settings.
    """

    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    sender: str | None = None
    use_tls: bool = True
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class PdfSettings:
    """
    PDF rendering toggle.
    """

    enabled: bool = True


@dataclass(frozen=True)
class ServerSettings:
    """
    HTTP server settings.
    """

    port: int = 4000
    log_level: str = "INFO"


def _resolve_path(raw: str) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else PROJECT_ROOT / path


@lru_cache(maxsize=1)
def get_upstream_settings() -> UpstreamSettings:
    """
    Return cached upstream API settings from environment variables.
    """

    return UpstreamSettings(
        base_url=_get_str_env("UPSTREAM_API_BASE", "https://bizdev.newform.ai").rstrip("/"),
        api_token=_get_str_env("UPSTREAM_API_TOKEN", "NEWFORMCODINGCHALLENGE"),
        auth_header_name=_get_str_env("UPSTREAM_AUTH_HEADER_NAME", "Authorization"),
        timeout_seconds=max(1.0, _get_float_env("UPSTREAM_TIMEOUT_SECONDS", 30.0)),
    )


@lru_cache(maxsize=1)
def get_report_storage_settings() -> ReportStorageSettings:
    """
    Return cached report storage settings from environment variables.
    """

    return ReportStorageSettings(
        report_dir=_resolve_path(_get_str_env("REPORT_DIR", "reports")),
        data_dir=_resolve_path(_get_str_env("DATA_DIR", "data")),
        public_base_url=_get_str_env("SERVER_PUBLIC_BASE", "http://localhost:4000").rstrip("/"),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return cached LLM settings. ``LLM_API_KEY`` wins over ``OPENAI_API_KEY``.
    """

    return LLMSettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        temperature=min(2.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.3))),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 1200)),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 60.0)),
    )


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """
    Return cached SMTP delivery settings.
    """

    return EmailSettings(
        smtp_host=_get_optional_str_env("SMTP_HOST"),
        smtp_port=_get_int_env("SMTP_PORT", 587),
        smtp_user=_get_optional_str_env("SMTP_USER"),
        smtp_password=_get_optional_str_env("SMTP_PASSWORD"),
        sender=_get_optional_str_env("EMAIL_FROM"),
        use_tls=_get_bool_env("SMTP_USE_TLS", True),
        timeout_seconds=max(1.0, _get_float_env("SMTP_TIMEOUT_SECONDS", 30.0)),
    )


@lru_cache(maxsize=1)
def get_pdf_settings() -> PdfSettings:
    return PdfSettings(enabled=_get_bool_env("PDF_ENABLED", True))


@lru_cache(maxsize=1)
def get_server_settings() -> ServerSettings:
    return ServerSettings(
        port=_get_int_env("SERVER_PORT", 4000),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )
