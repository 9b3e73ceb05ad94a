"""
Error types for the PocketBase client.

Everything raised by this package derives from CLIError, so callers (and the
CLI) can print any failure as JSON via to_dict().
"""

from typing import Any, NamedTuple


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(CLIError):
    """API error with status code and message."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        return result


class FieldError(NamedTuple):
    """A validation problem reported by the server for a single field."""

    field: str
    code: str
    message: str


class DomainError(APIError):
    """
    Business error reported by the server for a rejected request.

    Only built by map_error(). field_errors is empty when the server reported
    a general error rather than per-field validation failures.
    """

    def __init__(self, message: str, status: int, field_errors: list[FieldError] | None = None):
        super().__init__(message, status)
        self.field_errors: list[FieldError] = list(field_errors or [])

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.field_errors:
            result["field_errors"] = [fe._asdict() for fe in self.field_errors]
        return result

    def __str__(self) -> str:
        if not self.field_errors:
            return f"{self.message} ({self.status})"
        causes = ", ".join(f"{fe.field}: {fe.message} ({fe.code})" for fe in self.field_errors)
        return f"{self.message} ({self.status}) Errors: {causes}"


class UnexpectedResponseError(APIError):
    """The server answered with a success status the operation did not expect."""


class TransportError(APIError):
    """The server could not be reached or did not answer in time."""


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""


class InvalidValueError(ValidationError):
    """A Value case was used where it cannot be encoded (e.g. files in a JSON body)."""


class DecodeError(CLIError):
    """A success response did not have the expected shape."""


class MalformedErrorBody(CLIError):
    """A failure response body was not a JSON error object."""


class UnsupportedFileTypeError(CLIError):
    """No content type is known for a file extension."""
