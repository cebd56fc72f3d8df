"""
Tests for op submission (spine_ops.framework.operations).

Tests cover:
- submit / submit_or_raise on instances and classes
- Validation before perform and the failure_class contract
- Error inheritance with aliases, prefixes, remaps and ignores
- Submission state and observation logging
"""

import traceback

import pytest
from structlog.testing import capture_logs

from spine_ops.core.errors import ConfigurationError, RecordFailure, UsageError
from spine_ops.framework.error_set import ErrorSet
from spine_ops.framework.operations import Op, SubmissionState
from tests._support.ops import (
    AdminSignupOp,
    CustomFailure,
    CustomFailureClassOp,
    ErrorTraceOp,
    FalsePerformOp,
    PrefixedInputsOp,
    RemappedErrorsOp,
    SignupOp,
)

# =============================================================================
# Submission
# =============================================================================


class TestSubmit:
    """Tests for instance submission."""

    def test_validations_run_before_perform(self):
        op = SignupOp()
        assert op.submit() is False
        assert op.perform_called is None
        assert op.errors["email"] == ["can't be blank"]

    def test_perform_errors_can_be_inherited_and_transformed(self):
        op = AdminSignupOp({"email": "foo@bar.com", "password": "password123"})
        assert op.submit() is False
        assert op.perform_called is True
        assert op.perform_finished is None
        assert op.errors["email"] == ["has gotta be @admin.com"]

    def test_a_valid_submission_returns_control(self):
        op = SignupOp({"email": "foo@bar.com", "password": "password123"})
        assert op.submit_or_raise() is op
        assert op.perform_called is True
        assert op.perform_finished is True
        assert op.created_user.email_address == "foo@bar.com"

    def test_submit_or_raise_raises_with_full_messages(self):
        op = SignupOp({"email": "foo@bar.com"})
        with pytest.raises(RecordFailure, match="^Password can't be blank$") as exc_info:
            op.submit_or_raise()
        assert exc_info.value.record is op

    def test_failure_class_is_raised(self):
        with pytest.raises(CustomFailure, match="^Will never work$"):
            CustomFailureClassOp().submit_or_raise()

    def test_submit_returns_false_with_a_custom_failure_class(self):
        op = CustomFailureClassOp()
        assert op.submit() is False
        assert op.errors.full_messages() == ["Will never work"]

    def test_the_result_of_perform_does_not_matter(self):
        assert FalsePerformOp().submit_or_raise()

    def test_perform_must_be_implemented(self):
        with pytest.raises(NotImplementedError):
            Op().submit()

    def test_original_traceback_is_kept(self):
        with pytest.raises(RecordFailure, match="Failure of things") as exc_info:
            ErrorTraceOp().submit_or_raise()

        frames = [frame.name for frame in traceback.extract_tb(exc_info.value.__traceback__)]
        assert "foo" in frames
        assert isinstance(exc_info.value.__cause__, RecordFailure)

    def test_failure_class_must_subclass_record_failure(self):
        with pytest.raises(ConfigurationError, match="failure_class"):

            class BadOp(Op):
                failure_class = ValueError


class TestClassSubmission:
    """Tests for submitting directly from the class."""

    def test_submit_returns_the_op(self):
        op = SignupOp.submit()
        assert isinstance(op, SignupOp)
        assert op.errors["email"] == ["can't be blank"]

    def test_submit_or_raise_raises(self):
        with pytest.raises(RecordFailure):
            SignupOp.submit_or_raise()

    def test_submit_or_raise_returns_the_op(self):
        op = SignupOp.submit_or_raise({"email": "foo@bar.com", "password": "password123"})
        assert op.created_user.email_address == "foo@bar.com"

    @pytest.mark.parametrize("method", ["submit", "submit_or_raise"])
    def test_an_initializer_is_not_accepted(self, method):
        def initialize(o):
            o.email = "foo@bar.com"

        with pytest.raises(UsageError, match="initializer cannot be provided") as exc_info:
            getattr(SignupOp, method)(initializer=initialize)
        assert isinstance(exc_info.value, TypeError)


# =============================================================================
# Error inheritance
# =============================================================================


class TestInheritErrors:
    """Tests for folding foreign errors onto an op."""

    def test_prefixed_keys_land_on_prefixed_fields(self):
        op = PrefixedInputsOp({"user_email_address": "foo@bar.com"})
        assert op.submit() is False
        assert op.errors["user_email_address"] == ["has gotta be @admin.com"]

    def test_remapped_and_ignored_keys(self):
        op = RemappedErrorsOp()
        assert op.submit() is False
        assert op.errors.to_dict() == {"contact": ["is taken"], "base": ["Nickname is rude"]}

    def test_error_sinks_can_be_inherited_directly(self):
        op = SignupOp()
        assert op.inherit_errors(ErrorSet([("password", "is weak"), ("ssn", "is missing")])) is False
        assert op.errors.to_dict() == {"password": ["is weak"], "base": ["Ssn is missing"]}

    def test_ignore_error(self):
        class QuietOp(SignupOp):
            pass

        QuietOp.ignore_error("password")
        op = QuietOp()
        op.inherit_errors(ErrorSet([("password", "is weak")]))
        assert not op.errors
        assert "password" not in SignupOp.ignored_errors

    def test_error_remap_includes_aliases(self):
        assert SignupOp.error_remap() == {"email_address": "email"}
        assert RemappedErrorsOp.error_remap() == {"email_address": "contact"}


# =============================================================================
# State and observation
# =============================================================================


class TestSubmissionState:
    """Tests for the lifecycle state."""

    def test_new_ops_are_initialized(self):
        assert SignupOp().state is SubmissionState.INIT

    def test_success(self):
        op = SignupOp({"email": "foo@bar.com", "password": "password123"})
        op.submit()
        assert op.state is SubmissionState.SUCCEEDED

    def test_failure(self):
        op = SignupOp()
        op.submit()
        assert op.state is SubmissionState.FAILED

    def test_repr(self):
        assert repr(SignupOp({"email": "a@b.com"})) == "SignupOp(params={'email': 'a@b.com'}, state=init)"


class TestSubmissionLogging:
    """Tests for submission log events."""

    def test_successful_submission_logs_each_step(self):
        op = SignupOp({"email": "foo@bar.com", "password": "password123"})
        with capture_logs() as logs:
            op.submit()

        events = [entry["event"] for entry in logs]
        assert events.index("op.submit.start") < events.index("op.validate.end")
        assert events.index("op.validate.end") < events.index("op.perform.end")
        assert events.index("op.perform.end") < events.index("op.submit.end")

        end = next(entry for entry in logs if entry["event"] == "op.submit.end")
        assert end["op"] == "SignupOp"
        assert end["errors"] == 0

    def test_failed_perform_reports_the_error_count(self):
        with capture_logs() as logs:
            CustomFailureClassOp().submit()

        end = next(entry for entry in logs if entry["event"] == "op.submit.end")
        assert end["errors"] == 1

    def test_raised_failures_log_at_warning(self):
        with capture_logs() as logs:
            ErrorTraceOp().submit()

        errors = [entry for entry in logs if entry["event"] == "op.submit.error"]
        assert errors
        assert all(entry["log_level"] == "warning" for entry in errors)
        assert errors[-1]["error_type"] == "RecordFailure"
