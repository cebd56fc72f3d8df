"""
Logging context management using contextvars.

Submission-aware context that is attached to every log entry without
passing it through call signatures. A submission pushes the op name and a
submission id; nested ``log_step`` blocks push span ids.
"""

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


@dataclass
class LogContext:
    """
    Context attached to all log entries.

    Submission identifiers:
        op: Op class name (e.g., "SignupOp")
        submission_id: Unique id of one submit call

    Tracing (for nested timing blocks):
        span_id: Current span identifier
        parent_span_id: Parent span for nested steps
        step: Current step name
    """

    op: str | None = None
    submission_id: str | None = None

    span_id: str | None = None
    parent_span_id: str | None = None
    step: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "LogContext":
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None and k in current})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("spine_ops_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def bind_context(**kwargs) -> LogContext:
    """Merge values into the current context and return it."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Clear the current context (reset to empty)."""
    _log_context.set(LogContext())


class _ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token):
        self._token = token

    def restore(self):
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> _ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(op="SignupOp")
        try:
            do_work()
        finally:
            token.restore()
    """
    updated = get_context().merge(**kwargs)
    return _ContextToken(_log_context.set(updated))


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that adds the current context to every entry."""
    for key, value in get_context().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
