"""
Error types raised by the estimator core.

Conflicts are never errors (see conflicts.py). Only store failures and bad
input that cannot be coerced surface as exceptions.
"""


class TakeoffError(Exception):
    """Base class for estimator errors."""


class PersistenceError(TakeoffError):
    """
    A store write failed. Recoverable: the editor keeps its pending line so
    the user can retry. The core never retries on its own.
    """

    def __init__(self, message: str, line_id: str = None):
        super().__init__(message)
        self.line_id = line_id


class LineNotFoundError(TakeoffError):
    def __init__(self, line_id: str):
        super().__init__(f"Line not found: {line_id}")
        self.line_id = line_id


class CsvImportError(TakeoffError):
    """The CSV could not be read at all (empty file, no data rows)."""
