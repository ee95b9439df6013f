"""Shared helpers for services."""

from .retry import async_retry_with_backoff, is_retryable

__all__ = ["async_retry_with_backoff", "is_retryable"]
