"""
errors.py
---------
Failure taxonomy for the data access layer.

These exceptions are not raised to callers. Every failure is caught where it
happens, logged, and recorded (``ConnectionConfig.load_error``,
``RecordAccessor.last_error``) so callers can inspect what went wrong behind a
sentinel return value.
"""

from typing import Optional


class DJAPIError(Exception):
    """Base class for all recorded data access failures."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message} ({self.cause})"


class ConfigLoadFailure(DJAPIError):
    """The connection file is missing or unreadable."""


class ConnectionFailure(DJAPIError):
    """The driver could not be loaded or the connection was refused."""


class StatementPrepareFailure(DJAPIError):
    pass


class ParameterBindFailure(DJAPIError):
    pass


class QueryExecutionFailure(DJAPIError):
    """A query, update or generated key retrieval failed in the driver."""


class ResultReadFailure(DJAPIError):
    """A column value or the next row could not be read."""


class ResourceReleaseFailure(DJAPIError):
    pass
