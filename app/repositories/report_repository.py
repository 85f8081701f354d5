"""
Local filesystem storage for generated report artifacts.
"""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path

from app.domain.report import StoredReport
from app.repositories.errors import ReportStorageError


def _sanitize_file_name(file_name: str) -> str:
    safe_name = Path(file_name).name.strip()
    if not safe_name:
        raise ReportStorageError("Invalid file name.")
    return safe_name


class LocalReportStorage:
    """
    Append-only report directory served publicly under ``/reports``.

    Each run gets a unique, monotonically increasing millisecond stem, so two
    runs never overwrite each other's files.
    """

    def __init__(self, root_dir: str | Path, public_base_url: str) -> None:
        self._root_dir = Path(root_dir)
        self._public_base_url = public_base_url.rstrip("/")
        self._lock = threading.Lock()
        self._last_stamp = 0

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def new_run_stem(self, generated_at: datetime) -> str:
        stamp = int(generated_at.timestamp() * 1000)
        with self._lock:
            if stamp <= self._last_stamp:
                stamp = self._last_stamp + 1
            while any(self._root_dir.glob(f"report-{stamp}.*")):
                stamp += 1
            self._last_stamp = stamp
        return f"report-{stamp}"

    def public_url(self, file_name: str) -> str:
        return f"{self._public_base_url}/reports/{file_name}"

    def save(self, file_name: str, content: bytes) -> StoredReport:
        safe_file_name = _sanitize_file_name(file_name)
        absolute_path = self._root_dir / safe_file_name
        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                handle.write(content)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise ReportStorageError(f"Failed to write report file {safe_file_name}.") from exc

        return StoredReport(
            file_name=safe_file_name,
            path=str(absolute_path),
            url=self.public_url(safe_file_name),
        )
