"""
URI validation and sanitization for chunk downloads.

Segment URIs frequently carry CDN signatures or access tokens in their query
string. Everything that reaches a log record goes through sanitize_url or
sanitize_error_message first.
"""

import re
from typing import Set, Tuple
from urllib.parse import urlparse, urlunparse

# Allowed schemes for chunk downloads
ALLOWED_SCHEMES: Set[str] = {"https", "http"}


def validate_chunk_uri(uri: str) -> Tuple[bool, str]:
    """
    Validate that a chunk URI is an absolute http(s) URI with a host.

    Args:
        uri: URI to validate

    Returns:
        (is_valid, error_message)
        - (True, "") if valid
        - (False, "error description") if invalid

    Examples:
        >>> validate_chunk_uri("https://cdn.example.com/video/seg_001.ts")
        (True, '')

        >>> validate_chunk_uri("ftp://cdn.example.com/seg_001.ts")
        (False, 'Unsupported scheme: ftp')
    """
    if not uri:
        return False, "Empty URI"

    try:
        parsed = urlparse(uri)
    except ValueError as e:
        return False, f"Invalid URI format: {e}"

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False, f"Unsupported scheme: {parsed.scheme or '(none)'}"

    if not parsed.hostname:
        return False, "No hostname in URI"

    if not parsed.path or parsed.path.endswith("/"):
        return False, "URI path has no chunk file name"

    return True, ""


# ---------------------------------------------------------------------------
# URL Sanitization (for logging)
# ---------------------------------------------------------------------------

# Query parameters that may contain sensitive tokens
SENSITIVE_PARAMS = {
    "sig",
    "signature",
    "sv",
    "se",
    "st",
    "sp",
    "sr",
    "spr",  # Azure SAS
    "x-amz-signature",
    "x-amz-credential",
    "x-amz-security-token",  # AWS
    "policy",
    "key-pair-id",  # CloudFront
    "hdnts",
    "hdnea",  # Akamai
    "token",
    "access_token",
    "api_key",
    "apikey",
    "key",
    "secret",
    "password",
    "pwd",
    "auth",
    "authorization",
}


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters from URL.

    Preserves the path and structure for debugging while removing
    tokens that could grant access if exposed in logs.

    Args:
        url: URL that may contain sensitive parameters

    Returns:
        URL with sensitive parameters replaced with [REDACTED]
    """
    if not url:
        return url

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    if not parsed.query:
        return url

    sanitized_params = []
    for param in parsed.query.split("&"):
        if "=" in param:
            key, _ = param.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                sanitized_params.append(f"{key}=[REDACTED]")
                continue
        sanitized_params.append(param)

    return urlunparse(parsed._replace(query="&".join(sanitized_params)))


# ---------------------------------------------------------------------------
# Error Message Sanitization
# ---------------------------------------------------------------------------

SENSITIVE_PATTERNS = [
    (re.compile(r'sig=[^&\s"\']+', re.IGNORECASE), "sig=[REDACTED]"),
    (re.compile(r'signature=[^&\s"\']+', re.IGNORECASE), "signature=[REDACTED]"),
    (re.compile(r'token=[^&\s"\']+', re.IGNORECASE), "token=[REDACTED]"),
    (re.compile(r'key=[^&\s"\']+', re.IGNORECASE), "key=[REDACTED]"),
    (re.compile(r'password=[^&\s"\']+', re.IGNORECASE), "password=[REDACTED]"),
    (re.compile(r'secret=[^&\s"\']+', re.IGNORECASE), "secret=[REDACTED]"),
    (
        re.compile(r'x-amz-signature=[^&\s"\']+', re.IGNORECASE),
        "x-amz-signature=[REDACTED]",
    ),
    (
        re.compile(r'x-amz-credential=[^&\s"\']+', re.IGNORECASE),
        "x-amz-credential=[REDACTED]",
    ),
    (re.compile(r"bearer\s+[a-zA-Z0-9\-_.]+", re.IGNORECASE), "bearer [REDACTED]"),
]

_URL_PATTERN = re.compile(r'https?://[^\s"\'<>]+')


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """
    Remove potentially sensitive data from error messages.

    Applies URL sanitization first, then pattern-based redaction, and
    truncates to max_length.

    Args:
        msg: Error message that may contain sensitive data
        max_length: Maximum length of returned message

    Returns:
        Sanitized and truncated error message
    """
    if not msg:
        return msg

    msg = _URL_PATTERN.sub(lambda m: sanitize_url(m.group(0)), msg)

    for pattern, replacement in SENSITIVE_PATTERNS:
        msg = pattern.sub(replacement, msg)

    if len(msg) > max_length:
        msg = msg[: max_length - 3] + "..."

    return msg
