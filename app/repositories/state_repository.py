"""
app/repositories/state_repository.py

Durable JSON persistence for the active configuration and the run status.

Both documents live in one data directory::

    data/config.json   current ReportConfig (absent file = no config)
    data/status.json   current RunStatus, merge-updated in place
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from app.repositories.errors import StateStoreError
from app.schemas.report import ReportConfig, RunStatus

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
STATUS_FILE_NAME = "status.json"

_LEGACY_STATUS_KEYS = {"latestPublicUrl": "latestReportUrl"}
_STATUS_FIELDS = frozenset(RunStatus.model_fields)


def _write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        tmp_path.replace(path)
    except OSError as exc:
        raise StateStoreError(f"Failed to write {path.name}.") from exc


def _read_json(path: Path) -> Any | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Failed to read persisted state file=%s error=%s", path, exc)
        return None


class JsonStateStore:
    """
    Owns the configuration and status singletons for one process.

    Status writes are field merges: callers name only the fields they change
    and everything else is preserved. A lock makes each merge-and-persist
    atomic with respect to other writers in the same process.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._config_path = self._data_dir / CONFIG_FILE_NAME
        self._status_path = self._data_dir / STATUS_FILE_NAME
        self._lock = threading.Lock()
        self._config: ReportConfig | None = None
        self._status = RunStatus()

    @property
    def config(self) -> ReportConfig | None:
        return self._config

    @property
    def status(self) -> RunStatus:
        return self._status

    def load(self) -> None:
        """
        Load persisted config and status; missing or unreadable files leave defaults.
        """

        raw_config = _read_json(self._config_path)
        if raw_config is not None:
            try:
                self._config = ReportConfig.model_validate(raw_config)
                logger.info("Loaded persisted configuration platform=%s", self._config.platform.value)
            except ValidationError as exc:
                logger.error("Persisted configuration is invalid; ignoring it: %s", exc)
                self._config = None
        else:
            logger.info("No persisted configuration found")

        raw_status = _read_json(self._status_path)
        if isinstance(raw_status, dict):
            for legacy_key, key in _LEGACY_STATUS_KEYS.items():
                if legacy_key in raw_status and key not in raw_status:
                    raw_status[key] = raw_status.pop(legacy_key)
            try:
                self._status = RunStatus.model_validate(raw_status)
            except ValidationError as exc:
                logger.error("Persisted status is invalid; starting fresh: %s", exc)
                self._status = RunStatus()

    def save_config(self, config: ReportConfig) -> None:
        """
        Replace the active configuration and persist it immediately.
        """

        with self._lock:
            _write_json_atomic(self._config_path, config.model_dump(mode="json", by_alias=True))
            self._config = config
        logger.info("Configuration saved platform=%s cadence=%s", config.platform.value, config.cadence.value)

    def update_status(self, **fields: Any) -> RunStatus:
        """
        Merge ``fields`` into the run status and persist the result.

        Accepts snake_case field names; unknown names raise ``TypeError``.
        """

        unknown = set(fields) - _STATUS_FIELDS
        if unknown:
            raise TypeError(f"Unknown status field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            merged = self._status.model_copy(update=fields)
            _write_json_atomic(self._status_path, merged.to_payload())
            self._status = merged
        return merged
