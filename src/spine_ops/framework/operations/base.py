"""
Base op: a command object with declared inputs, validations and outputs.

An op is built from an input bag, validated, then performed. ``submit()``
reports business failure as ``False``; ``submit_or_raise()`` raises the op's
``failure_class`` instead. Either may be called on the class, which builds
the op from the same arguments and returns it.

Manifesto:
    - **One instance per input bag:** all state is private to the instance
    - **Typed absorption:** only ``RecordFailure`` is folded into ``errors``
    - **Contracts after success:** outputs are checked once perform returns
    - **Observable:** every phase runs inside a ``log_step`` hook

Architecture:
    ::

        Op(inputs) ──► setup_fields ──► setup_outputs ──► initializer(op)
                                                             │
        submit_or_raise():                                   ▼
          INIT ──► VALIDATING ──valid()──► PERFORMING ──perform()──┐
                        │ invalid                                  │
                        ▼                                          ▼
                      FAILED ◄── errors non-empty ◄──────── validate_outputs()
                        ▲                                          │
          RecordFailure ┘ (errors inherited, failure_class raised) ▼
                                                               SUCCEEDED

Examples:
    >>> class SignupOp(Op):
    ...     email = string(aka="email_address")
    ...     password = string()
    ...     created_user = Output()
    ...     rules = (presence("email", "password"),)
    ...
    ...     def perform(self):
    ...         self.output("created_user", User(email_address=self.email))
    >>> SignupOp({}).submit()
    False
    >>> SignupOp.submit_or_raise({"email": "a@b.com", "password": "pw"}).created_user.email_address
    'a@b.com'

Tags:
    spine-ops, framework, operations, submission, lifecycle

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import functools
import types
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from typing import Any, ClassVar

from spine_ops.core.errors import ConfigurationError, RecordFailure, UsageError
from spine_ops.core.protocols import ErrorRecord, ErrorSink
from spine_ops.core.timestamps import generate_ulid
from spine_ops.framework.error_set import BASE
from spine_ops.framework.fields.mixin import Fields
from spine_ops.framework.logging import TimingResult, get_logger, log_step, push_context
from spine_ops.framework.outputs import Outputs
from spine_ops.framework.validation import Validatable

log = get_logger(__name__)


class SubmissionState(str, Enum):
    """Where an op is in its submission lifecycle."""

    INIT = "init"
    VALIDATING = "validating"
    PERFORMING = "performing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class submission_method:  # noqa: N801
    """Instance method that, called on the class, builds the op and submits it.

    ``Op.submit(inputs)`` constructs ``Op(inputs)``, calls ``op.submit()`` and
    returns the op. An initializer cannot be passed through this path.
    """

    def __init__(self, func: Callable[..., Any]):
        self.func = func
        functools.update_wrapper(self, func)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is not None:
            return types.MethodType(self.func, instance)

        func = self.func

        @functools.wraps(func)
        def build_and_submit(*args: Any, **kwargs: Any) -> Any:
            if "initializer" in kwargs:
                raise UsageError(f"An initializer cannot be provided to `{owner.__name__}.{func.__name__}`")
            op = owner(*args, **kwargs)
            func(op)
            return op

        return build_and_submit


class Op(Fields, Outputs, Validatable):
    """
    Base class for ops.

    Subclasses declare fields (``email = string()``), outputs
    (``created_user = Output()``) and ``rules``, and implement ``perform``.

    Class attributes:
        failure_class: Raised by ``submit_or_raise``; must subclass RecordFailure
        error_map: Extra ``{foreign_field: own_field}`` remaps for inherited errors
        ignored_errors: Inherited error keys that are dropped
    """

    failure_class: ClassVar[type[RecordFailure]] = RecordFailure
    error_map: ClassVar[Mapping[str, str]] = {}
    ignored_errors: ClassVar[frozenset[str]] = frozenset()

    state: SubmissionState

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        failure_class = cls.failure_class
        if not (isinstance(failure_class, type) and issubclass(failure_class, RecordFailure)):
            raise ConfigurationError(f"{cls.__name__}.failure_class must subclass RecordFailure")
        cls.ignored_errors = frozenset(cls.ignored_errors)

    def __init__(self, inputs: Mapping[str, Any] | Any = None, *, initializer: Callable[[Op], Any] | None = None):
        self.state = SubmissionState.INIT
        self.setup_fields(inputs)
        self.setup_outputs()
        if initializer is not None:
            initializer(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(params={dict(self.params)!r}, state={self.state.value})"

    # =========================================================================
    # Error remapping
    # =========================================================================

    @classmethod
    def ignore_error(cls, *names: str) -> None:
        """Drop inherited errors keyed by any of ``names``."""
        cls.ignored_errors = cls.ignored_errors | {str(n) for n in names}

    @classmethod
    def error_remap(cls) -> dict[str, str]:
        """Alias -> field map built from ``aka`` declarations and ``error_map``."""
        remap = {alias: name for name, spec in cls.field_configurations.items() for alias in spec.aka}
        remap.update(cls.error_map)
        return remap

    def inherit_errors(self, error_object: ErrorRecord | ErrorSink, *, prefix: str | None = None) -> bool:
        """Fold another record's errors onto this op.

        A key lands on (1) this op's field of the same (prefixed) name, else
        (2) the field it is aliased to, else (3) ``base`` as a full message.
        Ignored keys are dropped. Always returns False.
        """
        errors = getattr(error_object, "errors", error_object)
        render = getattr(errors, "full_message", None)
        remap = self.error_remap()
        inherited = 0

        for key, message in errors:
            key = str(key)
            target = f"{prefix}{key}" if prefix else key
            if key in self.ignored_errors or target in self.ignored_errors:
                continue

            if target in self.field_configurations:
                self.errors.add(target, message)
            elif key in remap:
                self.errors.add(remap[key], message)
            else:
                full = render(key, message) if callable(render) else self.errors.full_message(key, message)
                self.errors.add(BASE, full)
            inherited += 1

        if inherited:
            log.debug("errors_inherited", op=type(self).__name__, count=inherited, source=type(error_object).__name__)
        return False

    # =========================================================================
    # Submission
    # =========================================================================

    def perform(self) -> Any:
        """Business logic; runs only when validation passes."""
        raise NotImplementedError(f"{type(self).__name__} must implement perform()")

    @submission_method
    def submit_or_raise(self) -> Op:
        """Validate and perform, raising ``failure_class`` on business failure."""
        token = push_context(op=type(self).__name__, submission_id=generate_ulid())
        try:
            try:
                with self.observe_submission():
                    self._validate_and_perform()
            except RecordFailure as failure:
                if failure.record is not self:
                    self.inherit_errors(failure.record)
                self.state = SubmissionState.FAILED
                raised = self.failure_class(self)
                raise raised.with_traceback(failure.__traceback__) from failure

            if self.errors:
                self.state = SubmissionState.FAILED
                raise self.failure_class(self)

            self.validate_outputs()
            self.state = SubmissionState.SUCCEEDED
            return self
        finally:
            token.restore()

    @submission_method
    def submit(self) -> bool:
        """Like ``submit_or_raise`` but returns False on business failure."""
        try:
            self.submit_or_raise()
        except RecordFailure as failure:
            if failure.record is not self:
                self.inherit_errors(failure.record)
            self.state = SubmissionState.FAILED
            return False
        return True

    def _validate_and_perform(self) -> None:
        self.state = SubmissionState.VALIDATING
        with self.observe_validation():
            is_valid = self.valid()
        if not is_valid:
            return

        self.state = SubmissionState.PERFORMING
        with self.observe_perform():
            self.perform()

    # =========================================================================
    # Observation hooks
    # =========================================================================

    @contextmanager
    def observe_submission(self) -> Iterator[TimingResult]:
        with log_step("op.submit", level="debug", error_level="warning", op=type(self).__name__) as timer:
            yield timer
            timer.add_metric("errors", len(self.errors))

    @contextmanager
    def observe_validation(self) -> Iterator[TimingResult]:
        with log_step("op.validate", log_start=False, level="debug", error_level="warning") as timer:
            yield timer

    @contextmanager
    def observe_perform(self) -> Iterator[TimingResult]:
        with log_step("op.perform", log_start=False, level="debug", error_level="warning") as timer:
            yield timer
