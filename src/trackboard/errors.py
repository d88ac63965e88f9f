"""Error taxonomy for Trackboard.

Every error here is recoverable by user action: fix the input, fix the file,
or re-trigger the call.
"""

from __future__ import annotations


class TrackboardError(Exception):
    """Base class for all Trackboard errors."""


class ValidationError(TrackboardError, ValueError):
    """Raised when filter or form input is malformed."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ParseError(TrackboardError):
    """Raised when imported CSV or JSON text cannot be parsed.

    ``row`` is the record index in the file: the CSV header is row 0 and the
    first data row is row 1. It is None when the whole document is unreadable.
    """

    def __init__(self, message: str, *, row: int | None = None) -> None:
        if row is not None:
            message = f"Row {row}: {message}"
        super().__init__(message)
        self.row = row


class NetworkError(TrackboardError):
    """Raised when a backend or insight-function call fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def from_pydantic(exc: Exception) -> ValidationError:
    """Convert a pydantic validation error into a field-level ValidationError."""
    errors = getattr(exc, "errors", None)
    if not callable(errors):
        return ValidationError(str(exc))
    details = errors()
    if not details:
        return ValidationError(str(exc))
    first = details[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", "invalid value")
    if field:
        message = f"{field}: {message}"
    return ValidationError(message, field=field)
