"""
Security helpers.

Provides input validation for chunk URIs and sanitization of URIs and error
messages before they are logged.
"""

from segment_loader.security.url import (
    ALLOWED_SCHEMES,
    SENSITIVE_PARAMS,
    sanitize_error_message,
    sanitize_url,
    validate_chunk_uri,
)

__all__ = [
    "validate_chunk_uri",
    "sanitize_url",
    "sanitize_error_message",
    "ALLOWED_SCHEMES",
    "SENSITIVE_PARAMS",
]
