"""
Spine Ops - declarative input binding and validation for command objects.

- spine_ops.core: errors, settings, protocols and timestamps
- spine_ops.framework: fields, associations, type casting, ops and auth
"""

from spine_ops.core.errors import (
    AssociationTypeMismatchError,
    AuthorizationNotDeclaredError,
    ConfigurationError,
    EntityNotFoundError,
    EntityTypeNotFoundError,
    Failure,
    FieldRedefinitionError,
    InvalidOutputTypeError,
    MassAssignmentError,
    NotAuthorizedError,
    OpsError,
    OutputNotSetError,
    RecordFailure,
    TypeCastError,
    UnknownOutputError,
    UsageError,
)
from spine_ops.core.settings import EngineSettings, configure, get_settings, override_settings, reset_settings
from spine_ops.framework.auth import (
    AuthorizedOp,
    no_user_requirements,
    policy,
    require_no_user,
    require_user,
)
from spine_ops.framework.error_set import ErrorSet
from spine_ops.framework.fields import declarations as fields
from spine_ops.framework.fields.mixin import Fields
from spine_ops.framework.logging import configure_logging
from spine_ops.framework.lookup import EntityRegistry, default_registry, register_entity
from spine_ops.framework.operations import Op, SubmissionState
from spine_ops.framework.outputs import Output, Outputs
from spine_ops.framework.type_caster import TypeCaster, cast, type_caster
from spine_ops.framework.validation import (
    Rule,
    Validatable,
    inclusion,
    length,
    matches,
    presence,
    satisfies,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # errors
    "OpsError",
    "ConfigurationError",
    "FieldRedefinitionError",
    "UsageError",
    "MassAssignmentError",
    "TypeCastError",
    "RecordFailure",
    "Failure",
    "AssociationTypeMismatchError",
    "UnknownOutputError",
    "OutputNotSetError",
    "InvalidOutputTypeError",
    "EntityTypeNotFoundError",
    "EntityNotFoundError",
    "NotAuthorizedError",
    "AuthorizationNotDeclaredError",
    # settings
    "EngineSettings",
    "configure",
    "get_settings",
    "override_settings",
    "reset_settings",
    # ops
    "Op",
    "SubmissionState",
    "AuthorizedOp",
    "require_user",
    "require_no_user",
    "no_user_requirements",
    "policy",
    "Fields",
    "fields",
    "Output",
    "Outputs",
    # validation
    "ErrorSet",
    "Rule",
    "Validatable",
    "presence",
    "matches",
    "inclusion",
    "length",
    "satisfies",
    # entities and casting
    "EntityRegistry",
    "default_registry",
    "register_entity",
    "TypeCaster",
    "type_caster",
    "cast",
    "configure_logging",
]
