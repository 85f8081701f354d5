"""
Repository-layer exceptions for state and report file persistence.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for persistence failures."""


class StateStoreError(RepositoryError):
    """Raised when the configuration or status document cannot be written."""


class ReportStorageError(RepositoryError):
    """Raised when a generated report file cannot be stored."""
