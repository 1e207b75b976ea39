"""Tests for the exception hierarchy and error classification."""

import asyncio

import aiohttp
import pytest

from segment_loader.errors import (
    ChunkNotFoundError,
    ConfigurationError,
    ErrorCategory,
    FileSystemError,
    HttpStatusError,
    InvalidChunkTokenError,
    LoaderError,
    PermanentError,
    RetriesExhaustedError,
    TransientTransportError,
    classify_exception,
    classify_http_status,
)


class TestLoaderError:
    def test_str_includes_cause(self):
        error = LoaderError("Download failed", cause=ValueError("bad value"))
        assert str(error) == "Download failed | Caused by: bad value"

    def test_context_defaults_to_empty(self):
        assert LoaderError("x").context == {}

    def test_base_category_unknown(self):
        assert LoaderError("x").category is ErrorCategory.UNKNOWN


class TestHierarchy:
    def test_transport_error_is_transient(self):
        error = TransientTransportError("HTTP error: 503", uri="https://h/a_1.ts", http_status=503)

        assert error.category is ErrorCategory.TRANSIENT
        assert error.http_status == 503

    def test_retries_exhausted_keeps_last_error(self):
        last = TransientTransportError("timeout")
        error = RetriesExhaustedError("gave up", attempts=3, last_error=last)

        assert error.category is ErrorCategory.TRANSIENT
        assert error.attempts == 3
        assert error.cause is last

    @pytest.mark.parametrize(
        "error",
        [
            InvalidChunkTokenError("abc", "https://h/clip_abc.ts"),
            ChunkNotFoundError("missing", uri="https://h/clip_2.ts", chunk_index=2),
            HttpStatusError("forbidden", status_code=403),
            FileSystemError("read-only", path="/out/clip.ts"),
            ConfigurationError("bad"),
        ],
    )
    def test_permanent_errors(self, error):
        assert isinstance(error, PermanentError)
        assert error.category is ErrorCategory.PERMANENT

    def test_invalid_token_context(self):
        error = InvalidChunkTokenError("1a", "https://h/clip_1a.ts")

        assert error.token == "1a"
        assert error.context == {"token": "1a", "uri": "https://h/clip_1a.ts"}
        assert "'1a'" in str(error)


class TestClassifyHttpStatus:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (200, ErrorCategory.UNKNOWN),
            (206, ErrorCategory.UNKNOWN),
            (408, ErrorCategory.TRANSIENT),
            (429, ErrorCategory.TRANSIENT),
            (500, ErrorCategory.TRANSIENT),
            (503, ErrorCategory.TRANSIENT),
            (400, ErrorCategory.PERMANENT),
            (403, ErrorCategory.PERMANENT),
            (404, ErrorCategory.PERMANENT),
            (302, ErrorCategory.PERMANENT),
        ],
    )
    def test_status(self, status, expected):
        assert classify_http_status(status) == expected


class TestClassifyException:
    def test_loader_error_keeps_category(self):
        assert classify_exception(HttpStatusError("x", 403)) == ErrorCategory.PERMANENT

    def test_timeout(self):
        assert classify_exception(asyncio.TimeoutError()) == ErrorCategory.TRANSIENT

    def test_client_error(self):
        assert classify_exception(aiohttp.ClientConnectionError()) == ErrorCategory.TRANSIENT

    def test_os_error(self):
        assert classify_exception(PermissionError("denied")) == ErrorCategory.PERMANENT

    def test_other(self):
        assert classify_exception(KeyError("x")) == ErrorCategory.UNKNOWN
