"""
Exception types and error classification for segment_loader.

Provides:
- ErrorCategory enum for retry decisions
- Typed exception hierarchy for transfer errors
- Error classification utilities
"""

import asyncio
from enum import Enum
from typing import Optional

import aiohttp


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should retry with backoff
                   (e.g., network timeouts, 429/503 errors)
        PERMANENT: Non-retriable failures that won't succeed on retry
                   (e.g., malformed chunk names, 403, unwritable destination)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class LoaderError(Exception):
    """
    Base exception for all segment_loader errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Transient Errors
# =============================================================================


class TransientError(LoaderError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class TransientTransportError(TransientError):
    """Network failure, timeout or server error while fetching a chunk."""

    def __init__(
        self,
        message: str,
        uri: Optional[str] = None,
        http_status: Optional[int] = None,
        cause: Optional[BaseException] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message, cause, context)
        self.uri = uri
        self.http_status = http_status


class RetriesExhaustedError(LoaderError):
    """
    A chunk kept failing transiently until the retry bound was hit.

    The last transport error is kept as ``last_error`` and chained as
    ``__cause__`` by the transfer loop. The job has failed, but the category
    stays TRANSIENT: rerunning it later may succeed.
    """

    category = ErrorCategory.TRANSIENT

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[TransientTransportError] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message, last_error, context)
        self.attempts = attempts
        self.last_error = last_error


# =============================================================================
# Permanent Errors (Don't Retry)
# =============================================================================


class PermanentError(LoaderError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class InvalidChunkTokenError(PermanentError):
    """The numeric chunk token of a URI is not a non-negative integer."""

    def __init__(self, token: str, uri: str):
        super().__init__(
            f"Invalid chunk number {token!r} in URI path",
            context={"token": token, "uri": uri},
        )
        self.token = token
        self.uri = uri


class ChunkNotFoundError(PermanentError):
    """A chunk returned 404 where the end of the resource was not expected."""

    def __init__(self, message: str, uri: str, chunk_index: Optional[int] = None):
        super().__init__(message, context={"uri": uri, "chunk_index": chunk_index})
        self.uri = uri
        self.chunk_index = chunk_index


class HttpStatusError(PermanentError):
    """Non-retriable HTTP status (e.g. 401, 403, 410)."""

    def __init__(
        self,
        message: str,
        status_code: int,
        uri: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause, {"status_code": status_code, "uri": uri})
        self.status_code = status_code
        self.uri = uri


class FileSystemError(PermanentError):
    """Destination folder or file cannot be created or written."""

    def __init__(self, message: str, path: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause, {"path": path})
        self.path = path


class ConfigurationError(PermanentError):
    """Invalid configuration or job description."""

    pass


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    404 is reported as PERMANENT here; whether it ends the resource is
    decided by the transfer loop's termination policy.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorCategory
    """
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT  # Request timeout / rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT  # Client errors, won't fix with retry

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.PERMANENT  # 1xx/3xx reaching us means a broken source


def classify_exception(exc: BaseException) -> ErrorCategory:
    """
    Classify an exception into error category.

    Args:
        exc: Exception to classify

    Returns:
        Appropriate ErrorCategory
    """
    # Already classified
    if isinstance(exc, LoaderError):
        return exc.category

    if isinstance(exc, aiohttp.ClientResponseError):
        return classify_http_status(exc.status)

    # Connection resets, payload truncation, DNS failures, timeouts
    if isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError)):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, OSError):
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN
