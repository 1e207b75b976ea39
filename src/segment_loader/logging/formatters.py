"""Log formatters for JSON and console output."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from segment_loader.logging.context import get_log_context
from segment_loader.security.url import sanitize_error_message, sanitize_url


def format_sanitized_exception(formatter: logging.Formatter, exc_info) -> str:
    """Format a traceback with tokens in chained messages and URLs redacted.

    The whole traceback is kept; only the sensitive values are replaced.
    """
    return sanitize_error_message(formatter.formatException(exc_info), max_length=sys.maxsize)


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove sensitive tokens before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Chunk tracking
        "chunk_index",
        "chunk_uri",
        "chunk_bytes",
        "chunks_written",
        "first_chunk",
        "last_chunk",
        "termination_policy",
        # Output
        "resource_name",
        "file_path",
        "size_bytes",
        "duration_ms",
        # Retry tracking
        "retry_count",
        "max_retries",
        "delay_seconds",
        "total_retries",
        # Errors
        "http_status",
        "error_category",
        "error_message",
        # Batch
        "batch_size",
        "records_succeeded",
        "records_failed",
        "records_skipped",
        "max_concurrent",
    ]

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["chunk_uri", "url"]

    def _sanitize_value(self, key: str, value: Any) -> Any:
        """Sanitize value if it's a URL field."""
        if key in self.URL_FIELDS and isinstance(value, str):
            return sanitize_url(value)
        if key == "error_message" and isinstance(value, str):
            return sanitize_error_message(value)
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with sanitized URLs."""
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        ctx = get_log_context()
        if ctx["resource"]:
            log_entry["resource"] = ctx["resource"]
        if ctx["job_id"]:
            log_entry["job_id"] = ctx["job_id"]

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = self._sanitize_value(field, value)

        if record.exc_info:
            log_entry["exception"] = format_sanitized_exception(self, record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]

        if ctx["job_id"]:
            parts.append(f"[job {ctx['job_id']}]")
        if ctx["resource"]:
            parts.append(f"[{ctx['resource']}]")

        prefix = " - ".join(parts)
        message = f"{prefix} - {record.getMessage()}"

        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{format_sanitized_exception(self, record.exc_info)}"

        return message
