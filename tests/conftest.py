"""
pytest configuration for segment_loader tests.

Adds src directory to Python path for imports and isolates logging state
between tests.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from segment_loader.logging.context import clear_log_context  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_logging():
    """Reset log context and restore root handlers after each test."""
    root_logger = logging.getLogger()
    saved_handlers = list(root_logger.handlers)
    saved_level = root_logger.level
    clear_log_context()
    yield
    clear_log_context()
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)
