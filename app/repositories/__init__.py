"""
app/repositories package marker.
"""

from app.repositories.errors import ReportStorageError, RepositoryError, StateStoreError
from app.repositories.report_repository import LocalReportStorage
from app.repositories.state_repository import JsonStateStore

__all__ = [
    "JsonStateStore",
    "LocalReportStorage",
    "ReportStorageError",
    "RepositoryError",
    "StateStoreError",
]
