"""Helpers for emitting structured download records."""

import logging
from typing import Any, Dict

from segment_loader.errors.exceptions import LoaderError, classify_exception
from segment_loader.security.url import sanitize_error_message

# LoaderError.context key -> record field understood by JSONFormatter
ERROR_CONTEXT_FIELDS = {
    "uri": "chunk_uri",
    "chunk_index": "chunk_index",
    "http_status": "http_status",
    "status_code": "http_status",
    "path": "file_path",
}


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **fields: Any,
) -> None:
    """
    Log ``msg`` with ``fields`` attached to the record.

    Fields whose value is None are dropped, so optional values such as an
    HTTP status that never arrived do not show up as nulls.

    Example:
        log_with_context(
            logger, logging.INFO, 'Part 7 was downloaded to "output/clip.ts"',
            chunk_index=7,
            file_path="output/clip.ts",
            chunk_bytes=188_000,
        )
    """
    logger.log(level, msg, extra={k: v for k, v in fields.items() if v is not None})


def error_fields(exc: BaseException) -> Dict[str, Any]:
    """
    Record fields describing ``exc``.

    Always includes ``error_category`` (from classify_exception) and a
    sanitized ``error_message``. For a LoaderError the chunk URI, chunk
    index, HTTP status and file path it carries are lifted into the
    matching record fields.
    """
    fields: Dict[str, Any] = {
        "error_category": classify_exception(exc).value,
        "error_message": sanitize_error_message(str(exc)),
    }
    if isinstance(exc, LoaderError):
        for key, field in ERROR_CONTEXT_FIELDS.items():
            value = exc.context.get(key)
            if value is not None:
                fields.setdefault(field, value)
    return fields


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **fields: Any,
) -> None:
    """
    Log a failed download step.

    Explicit ``fields`` win over the ones derived from ``exc``.
    """
    record_fields = error_fields(exc)
    record_fields.update({k: v for k, v in fields.items() if v is not None})
    logger.log(
        level,
        msg,
        exc_info=exc if include_traceback else None,
        extra=record_fields,
    )
