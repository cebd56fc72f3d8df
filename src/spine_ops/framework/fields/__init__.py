"""Field specifications, accessors and class-body declarations.

The ``Fields`` mixin that binds them to instances lives in
``spine_ops.framework.fields.mixin``.
"""

from spine_ops.framework.fields.configuration import (
    NO_DEFAULT,
    PROTECTED_GROUP_IDENTIFIERS,
    FieldBehavior,
    FieldSpec,
)
from spine_ops.framework.fields.declarations import Association, Field

__all__ = [
    "NO_DEFAULT",
    "PROTECTED_GROUP_IDENTIFIERS",
    "FieldBehavior",
    "FieldSpec",
    "Field",
    "Association",
]
