"""
Structured error types for spine-ops.

Every failure the engine can produce is a typed ``OpsError`` carrying a
category, optional structured context, and an optional chained cause. The
submission lifecycle relies on this hierarchy: only ``RecordFailure`` (and
its subclasses) carries an attached error-bearing record and is absorbed by
``submit()``. Everything else propagates to the caller unchanged.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure mode, no string matching
    - **Record-bearing failures:** Only ``RecordFailure`` exposes ``.record``
    - **Rich Context:** Errors carry op/field/output metadata for logging
    - **Error Chaining:** Original exceptions preserved as ``__cause__``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                          OpsError                             │
        │               (category, context, cause)                      │
        ├──────────────────────────────────────────────────────────────┤
        │  ConfigurationError      RecordFailure        OutputError     │
        │   FieldRedefinition       AssociationType-     UnknownOutput  │
        │   AuthorizationNot-        MismatchError       OutputNotSet   │
        │     Declared                                   InvalidOutput- │
        │   UnknownOutput                                  Type         │
        │                                                               │
        │  UsageError   MassAssignmentError   TypeCastError             │
        │  EntityTypeNotFoundError   EntityNotFoundError                │
        │  NotAuthorizedError                                           │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = MassAssignmentError("admin")
    >>> str(error)
    '`admin` is not mass assignable'
    >>> error.with_context(op="SignupOp").context.op
    'SignupOp'

Tags:
    error-handling, exception-hierarchy, error-context, spine-ops

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    CONFIG = "CONFIG"
    USAGE = "USAGE"
    VALIDATION = "VALIDATION"
    CAST = "CAST"
    ASSOCIATION = "ASSOCIATION"
    OUTPUT = "OUTPUT"
    LOOKUP = "LOOKUP"
    AUTH = "AUTH"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        op: Name of the op class involved
        field: Field name the error concerns
        output: Output name the error concerns
        metadata: Additional key-value pairs
    """

    op: str | None = None
    field: str | None = None
    output: str | None = None

    metadata: dict[str, Any] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["op", "field", "output"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class OpsError(Exception):
    """
    Base exception for all spine-ops errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is chained as ``__cause__`` so tracebacks show the
    original failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> OpsError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TypeCastError("bad value").with_context(op="SignupOp", field="age")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SCHEMA / USAGE ERRORS
# =============================================================================


class ConfigurationError(OpsError):
    """Schema misuse detected at class-definition or instantiation time."""

    default_category = ErrorCategory.CONFIG


class FieldRedefinitionError(ConfigurationError):
    """A field was declared twice on the same schema without ``allow_overwrite``."""

    def __init__(self, schema: str, name: str):
        super().__init__(
            f"Field '{name}' is already defined on {schema}; "
            "pass allow_overwrite=True to redefine it",
            context=ErrorContext(op=schema, field=name),
        )
        self.field_name = name


class UsageError(OpsError, TypeError):
    """An API was called with arguments it does not accept."""

    default_category = ErrorCategory.USAGE


# =============================================================================
# INPUT ERRORS
# =============================================================================


class MassAssignmentError(OpsError):
    """Input supplied a field that may only be set explicitly."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, field_name: str):
        super().__init__(
            f"`{field_name}` is not mass assignable",
            context=ErrorContext(field=field_name),
        )
        self.field_name = field_name


class TypeCastError(OpsError, ValueError):
    """A value could not be coerced to its declared type."""

    default_category = ErrorCategory.CAST


# =============================================================================
# RECORD-BEARING FAILURES
# =============================================================================


class RecordFailure(OpsError):
    """
    Failure carrying the object whose error set explains it.

    The message is the record's full error messages joined by ``", "``.
    Submission folds ``record.errors`` into the failing op unless the
    record is the op itself.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(self, record: Any, message: str | None = None):
        self.record = record
        if message is None:
            message = ", ".join(record.errors.full_messages())
        super().__init__(message)


Failure = RecordFailure


class AssociationTypeMismatchError(RecordFailure):
    """An association was assigned an entity of an incompatible type."""

    default_category = ErrorCategory.ASSOCIATION


# =============================================================================
# OUTPUT ERRORS
# =============================================================================


class OutputError(OpsError):
    """Base for output contract violations."""

    default_category = ErrorCategory.OUTPUT


class UnknownOutputError(OutputError, ConfigurationError):
    """An output was written that the schema never declared."""

    default_category = ErrorCategory.OUTPUT

    def __init__(self, name: str):
        super().__init__(f"Unknown output '{name}'", context=ErrorContext(output=name))
        self.output_name = name


class OutputNotSetError(OutputError):
    """A required output was missing after perform completed."""

    def __init__(self, name: str):
        super().__init__(
            f"Expected output '{name}' to be set upon completion of perform but was not.",
            context=ErrorContext(output=name),
        )
        self.output_name = name


class InvalidOutputTypeError(OutputError):
    """An output value did not match its declared type."""

    def __init__(self, name: str, expected: str, actual: str):
        super().__init__(
            f"Invalid output type for '{name}' expected {expected} but got {actual}",
            context=ErrorContext(output=name),
        )
        self.output_name = name
        self.expected = expected
        self.actual = actual


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class EntityTypeNotFoundError(OpsError, LookupError):
    """A type name could not be resolved to a registered entity class."""

    default_category = ErrorCategory.LOOKUP

    def __init__(self, type_name: str):
        super().__init__(f"Unknown entity type '{type_name}'")
        self.type_name = type_name


class EntityNotFoundError(OpsError, LookupError):
    """The lookup collaborator found no entity for a key."""

    default_category = ErrorCategory.LOOKUP

    def __init__(self, type_name: str, find_by: str, key: Any):
        super().__init__(f"Couldn't find {type_name} with '{find_by}'={key!r}")
        self.type_name = type_name
        self.find_by = find_by
        self.key = key


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================


class NotAuthorizedError(OpsError):
    """An authorization check rejected the current user."""

    default_category = ErrorCategory.AUTH
    status = 401

    messages: dict[str, str] = {
        "unauthorized": "Sorry, you are not authorized to perform this action.",
        "empty_unauthorized": "Sorry, you are not authorized to perform this action.",
    }

    def __init__(self, reason: str | None = None):
        reason = reason or "unauthorized"
        super().__init__(self.messages.get(reason, reason))
        self.reason = reason


class AuthorizationNotDeclaredError(ConfigurationError):
    """An authorized op declared no authorization checks at all."""

    def __init__(self, schema: str):
        super().__init__(
            f"Authorization management has not been declared on {schema} yet. "
            "Declare require_user(), require_no_user(), no_user_requirements() "
            "or a policy in its `authorization` tuple.",
            context=ErrorContext(op=schema),
        )
