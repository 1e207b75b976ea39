"""
Structured logging module.

Provides JSON logging with per-job context propagation.

Import directly from sub-modules:
    from segment_loader.logging.setup import get_logger, setup_logging
    from segment_loader.logging.utilities import log_with_context, log_exception
    from segment_loader.logging.context import log_context, set_log_context
"""

from segment_loader.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    reset_log_context,
    set_log_context,
)
from segment_loader.logging.setup import get_logger, setup_logging
from segment_loader.logging.utilities import error_fields, log_exception, log_with_context

__all__ = [
    "clear_log_context",
    "get_log_context",
    "log_context",
    "reset_log_context",
    "set_log_context",
    "get_logger",
    "setup_logging",
    "error_fields",
    "log_exception",
    "log_with_context",
]
