"""Utility modules: errors, logging and image transcoding."""

from .errors import (
    AtelierError,
    AuthError,
    ContentShapeError,
    EmptyContentError,
    ImageCodecError,
    MalformedPayloadError,
    NetworkError,
    NotFoundError,
    ParseError,
    SizeLimitError,
    StorageError,
    TruncatedPayloadError,
    ValidationError,
    handle_error,
)
from .logging_config import get_logger, log_task_end, log_task_start

__all__ = [
    "AtelierError",
    "AuthError",
    "ContentShapeError",
    "EmptyContentError",
    "ImageCodecError",
    "MalformedPayloadError",
    "NetworkError",
    "NotFoundError",
    "ParseError",
    "SizeLimitError",
    "StorageError",
    "TruncatedPayloadError",
    "ValidationError",
    "get_logger",
    "handle_error",
    "log_task_end",
    "log_task_start",
]
