"""
Timed, span-linked log steps.

``log_step`` wraps a block, pushes a span id into the log context and logs
start (DEBUG), end (with ``duration_ms``) or error before re-raising.
Submission wraps itself and its validate/perform hooks in one step each.
"""

import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from spine_ops.framework.logging.context import get_context, get_logger, push_context


@dataclass
class TimingResult:
    """Timing and metrics for one step."""

    step: str
    parent_span_id: str | None = None
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    @property
    def duration_ms(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def stop(self) -> "TimingResult":
        if self.ended_at is None:
            self.ended_at = time.perf_counter()
        return self

    def add_metric(self, key: str, value: Any) -> "TimingResult":
        """Add a field to the end (or error) log entry."""
        self.metrics[key] = value
        return self

    def to_log_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"span_id": self.span_id, "duration_ms": round(self.duration_ms, 2)}
        if self.parent_span_id:
            result["parent_span_id"] = self.parent_span_id
        result.update(self.metrics)
        if self.error is not None:
            result["status"] = "error"
            result["error_type"] = type(self.error).__name__
            result["error_message"] = str(self.error)
        return result


@contextmanager
def log_step(
    event: str,
    log_start: bool = True,
    level: str = "info",
    error_level: str = "error",
    **extra_metrics,
) -> Iterator[TimingResult]:
    """
    Log ``<event>.start`` / ``<event>.end`` around a block, or ``<event>.error``.

    Usage:
        with log_step("op.perform", op="SignupOp") as timer:
            op.perform()
            timer.add_metric("outputs", 2)

        # DEBUG op.perform.start span_id=a1b2c3d4 op=SignupOp
        # INFO  op.perform.end   span_id=a1b2c3d4 duration_ms=4.2 outputs=2

    Nested steps record the enclosing step's span as ``parent_span_id``.
    """
    log = get_logger("spine_ops.timing")

    parent_span = get_context().span_id
    timer = TimingResult(step=event, parent_span_id=parent_span, metrics=dict(extra_metrics))
    token = push_context(span_id=timer.span_id, parent_span_id=parent_span, step=event)

    try:
        if log_start:
            start_fields = {"span_id": timer.span_id, **extra_metrics}
            if parent_span:
                start_fields["parent_span_id"] = parent_span
            log.debug(f"{event}.start", **start_fields)
        yield timer
    except Exception as e:
        timer.error = e
        getattr(log, error_level)(f"{event}.error", **timer.stop().to_log_dict())
        raise
    finally:
        timer.stop()
        token.restore()

    getattr(log, level)(f"{event}.end", **timer.to_log_dict())
