"""Op base class and submission lifecycle."""

from spine_ops.framework.operations.base import Op, SubmissionState, submission_method

__all__ = ["Op", "SubmissionState", "submission_method"]
