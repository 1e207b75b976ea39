"""Context variables injected into every log record."""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Dict, Iterator, List, Optional, Tuple

_resource: ContextVar[Optional[str]] = ContextVar("resource", default=None)
_job_id: ContextVar[Optional[str]] = ContextVar("job_id", default=None)


def set_log_context(
    resource: Optional[str] = None,
    job_id: Optional[str] = None,
) -> List[Tuple[ContextVar, Token]]:
    """
    Set logging context for the current task.

    Each asyncio task runs in a copy of its parent's context, so jobs started
    with asyncio.gather() do not see each other's values.

    Args:
        resource: Name of the resource being downloaded
        job_id: Position of the job within a batch

    Returns:
        Tokens for reset_log_context(), one per value that was set
    """
    tokens = []
    if resource is not None:
        tokens.append((_resource, _resource.set(resource)))
    if job_id is not None:
        tokens.append((_job_id, _job_id.set(job_id)))
    return tokens


def reset_log_context(tokens: List[Tuple[ContextVar, Token]]) -> None:
    """Restore the values that were current before set_log_context()."""
    for var, token in reversed(tokens):
        var.reset(token)


@contextmanager
def log_context(
    resource: Optional[str] = None,
    job_id: Optional[str] = None,
) -> Iterator[None]:
    """Set logging context for the duration of a ``with`` block."""
    tokens = set_log_context(resource=resource, job_id=job_id)
    try:
        yield
    finally:
        reset_log_context(tokens)


def get_log_context() -> Dict[str, Optional[str]]:
    """Get current logging context."""
    return {
        "resource": _resource.get(),
        "job_id": _job_id.get(),
    }


def clear_log_context() -> None:
    """Reset all context variables."""
    _resource.set(None)
    _job_id.set(None)
