"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- LoaderError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from segment_loader.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    LoaderError,
    TransientError,
    PermanentError,
    # Transient errors
    TransientTransportError,
    RetriesExhaustedError,
    # Permanent errors
    InvalidChunkTokenError,
    ChunkNotFoundError,
    HttpStatusError,
    FileSystemError,
    ConfigurationError,
    # Classification utilities
    classify_http_status,
    classify_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "LoaderError",
    "TransientError",
    "PermanentError",
    # Transient errors
    "TransientTransportError",
    "RetriesExhaustedError",
    # Permanent errors
    "InvalidChunkTokenError",
    "ChunkNotFoundError",
    "HttpStatusError",
    "FileSystemError",
    "ConfigurationError",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
]
