"""
Unified error handling for Atelier Catalog.

Whole-catalog operations (store batches, sync) fail with exactly one error
from this module. Per-item passes (image compression, swaps) catch these
locally and report them.
"""

import logging

logger = logging.getLogger(__name__)


class AtelierError(Exception):
    """Base exception for Atelier Catalog errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}. {self.suggestion}"
        return self.message


class StorageError(AtelierError):
    """The local store rejected a read or a transaction."""
    pass


class ValidationError(AtelierError):
    """Payload shape is wrong (not an array, bad record, bad argument)."""
    pass


class AuthError(AtelierError):
    """Credential missing, invalid, expired or lacking permission."""
    pass


class SizeLimitError(AtelierError):
    """Serialized catalog exceeds the hard payload ceiling."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Catalog is {size / (1024 * 1024):.1f} MiB, above the "
            f"{limit / (1024 * 1024):.0f} MiB upload limit",
            suggestion="Run 'atelier images compress-all' and try again",
        )
        self.size = size
        self.limit = limit


class NetworkError(AtelierError):
    """Transport failure or unexpected HTTP status."""

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, suggestion)
        self.status_code = status_code


class ParseError(AtelierError):
    """Remote content could not be parsed as JSON."""

    kind = "malformed"


class TruncatedPayloadError(ParseError):
    """Parse failure consistent with a cut-off payload."""

    kind = "truncated"


class MalformedPayloadError(ParseError):
    """Any other parse failure."""

    kind = "malformed"


class NotFoundError(AtelierError):
    """Resource not found."""
    pass


class ContentShapeError(AtelierError):
    """Remote content is not JSON (e.g. an HTML error page)."""
    pass


class EmptyContentError(ContentShapeError):
    """Remote content is empty."""
    pass


class ImageCodecError(AtelierError):
    """A single image could not be decoded or encoded."""
    pass


def handle_error(error: Exception, operation: str = "operation") -> str:
    """
    Turn an exception into a single user-facing line.

    Args:
        error: The exception that occurred
        operation: Name of the operation that failed

    Returns:
        User-friendly error message with suggestions
    """
    logger.error(f"Error in {operation}: {error}")

    if isinstance(error, AtelierError):
        return f"Error: {error}"

    error_str = str(error).lower()
    if "connection" in error_str or "timeout" in error_str:
        return (
            "Error: Could not reach the backup server. "
            "Check your network connection and try again."
        )

    return f"Error in {operation}: {type(error).__name__} - {error}"


def format_api_error(status_code: int, message: str = "") -> str:
    """Format an API error with appropriate message."""
    error_messages = {
        400: "Bad request.",
        401: "Token expired or invalid. Please log in again.",
        403: "Access denied. Make sure the token has the 'gist' scope.",
        404: "Backup not found.",
        422: "The backup server rejected the payload.",
        429: "Rate limit exceeded. Please wait before making more requests.",
        500: "Backup server error. Please try again later.",
        502: "Backup server unavailable. Please try again later.",
        503: "Backup server unavailable. Please try again later.",
    }

    base_message = error_messages.get(status_code, f"API error (status {status_code})")
    if message:
        return f"{base_message} Details: {message}"
    return base_message
