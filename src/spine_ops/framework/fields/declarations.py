"""Class-body field declarations.

Usage:
    from spine_ops.framework.fields import declarations as f

    class SignupOp(Op):
        email = f.string(aka="email_address")
        password = f.string()
        tags = f.array(of="string", default=list)
        owner = f.association(polymorphic=True)

Each declaration registers itself through ``owner.field(name, ...)`` (or
``owner.association``) when the class is created, and is then replaced by
the generated accessor.
"""

from __future__ import annotations

from typing import Any

from spine_ops.core.errors import ConfigurationError


class Field:
    """Declare a field in a class body."""

    def __init__(self, type: Any = None, **options: Any):
        if type is not None:
            options["type"] = type
        self.options = options

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.options!r})"

    def _declare(self, owner: type, name: str) -> None:
        owner.field(name, **self.options)

    def __set_name__(self, owner: type, name: str) -> None:
        if not callable(getattr(owner, "field", None)):
            raise ConfigurationError(f"{owner.__name__} does not support field declarations")
        self._declare(owner, name)


class Association(Field):
    """Declare an association in a class body."""

    def _declare(self, owner: type, name: str) -> None:
        spec = owner.association(name, **self.options)
        # renamed with `as`: the declared name is not a field
        if spec.name != name and owner.__dict__.get(name) is self:
            delattr(owner, name)


def field(type: Any = None, **options: Any) -> Field:
    return Field(type, **options)


def association(**options: Any) -> Association:
    if "as_" in options:
        options["as"] = options.pop("as_")
    return Association(**options)


def _typed(tag: str):
    def declare(**options: Any) -> Field:
        return Field(tag, **options)

    declare.__name__ = declare.__qualname__ = tag
    declare.__doc__ = f"Declare a ``{tag}`` field."
    return declare


string = _typed("string")
text = _typed("text")
integer = _typed("integer")
number = _typed("number")
decimal = _typed("decimal")
boolean = _typed("boolean")
date = _typed("date")
time = _typed("time")
iso_date = _typed("iso_date")
iso_time = _typed("iso_time")
object = _typed("object")  # noqa: A001
array = _typed("array")
file = _typed("file")
foreign_key = _typed("foreign_key")
