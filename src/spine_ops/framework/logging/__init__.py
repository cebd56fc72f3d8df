"""
spine-ops logging - structured, submission-aware logging.

Usage:
    from spine_ops.framework.logging import get_logger, configure_logging, log_step

    configure_logging()
    log = get_logger(__name__)

    with log_step("op.perform", op="SignupOp"):
        op.perform()
"""

from spine_ops.framework.logging.config import configure_logging, is_configured
from spine_ops.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
)
from spine_ops.framework.logging.timing import TimingResult, log_step

__all__ = [
    "configure_logging",
    "is_configured",
    "get_logger",
    "get_context",
    "bind_context",
    "clear_context",
    "push_context",
    "LogContext",
    "log_step",
    "TimingResult",
]
