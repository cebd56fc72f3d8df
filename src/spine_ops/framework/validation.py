"""Declarative validation rules for ops and entities.

Manifesto:
    Ops must validate inputs before performing. Rules are declared as data
    on the class (``rules = (...)``), inherited along the MRO, and run
    against cast field values. Anything more involved goes in ``validate()``.

Examples:
    >>> class SignupOp(Op):
    ...     email = string()
    ...     rules = (presence("email"), matches("email", r"@"))

Tags:
    spine-ops, framework, validation, rules

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection
from dataclasses import dataclass
from typing import Any, ClassVar

from spine_ops.framework.error_set import ErrorSet
from spine_ops.framework.type_caster import is_blank


@dataclass(frozen=True)
class Rule:
    """A predicate applied to one or more attributes of a record."""

    fields: tuple[str, ...]
    predicate: Callable[[Any], bool]
    message: str | Callable[[Any], str] = "is invalid"
    allow_none: bool = False

    def apply(self, record: Any) -> None:
        for name in self.fields:
            value = getattr(record, name, None)
            if value is None and self.allow_none:
                continue
            try:
                ok = self.predicate(value)
            except (TypeError, ValueError):
                ok = False
            if not ok:
                message = self.message(value) if callable(self.message) else self.message
                record.errors.add(name, message)


# =============================================================================
# Built-in Rules
# =============================================================================


def presence(*fields: str, message: str = "can't be blank") -> Rule:
    """Each field must be present (not None, empty or whitespace)."""
    return Rule(fields, lambda value: not is_blank(value), message)


def matches(field: str, pattern: str | re.Pattern, *, message: str = "is invalid", allow_none: bool = False) -> Rule:
    """The field's string form must contain a match for ``pattern``."""
    regex = re.compile(pattern)
    return Rule((field,), lambda value: value is not None and regex.search(str(value)) is not None, message, allow_none)


def inclusion(
    field: str,
    values: Collection[Any],
    *,
    message: str = "is not included in the list",
    allow_none: bool = False,
) -> Rule:
    return Rule((field,), lambda value: value in values, message, allow_none)


def length(field: str, *, minimum: int | None = None, maximum: int | None = None, allow_none: bool = False) -> Rule:
    """Bound the length of a string or collection."""

    def check(value: Any) -> bool:
        size = len(value) if value is not None else 0
        if minimum is not None and size < minimum:
            return False
        return maximum is None or size <= maximum

    def message(value: Any) -> str:
        size = len(value) if value is not None else 0
        if minimum is not None and size < minimum:
            return f"is too short (minimum is {minimum} characters)"
        return f"is too long (maximum is {maximum} characters)"

    return Rule((field,), check, message, allow_none)


def satisfies(field: str, predicate: Callable[[Any], bool], *, message: str = "is invalid", allow_none: bool = False) -> Rule:
    return Rule((field,), predicate, message, allow_none)


# =============================================================================
# Validatable
# =============================================================================


class Validatable:
    """Mixin giving a class an ``errors`` sink, ``rules`` and ``valid()``.

    Usable by ops and by plain entities alike.
    """

    rules: ClassVar[tuple[Rule, ...]] = ()
    validation_rules: ClassVar[tuple[Rule, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        collected: list[Rule] = []
        for klass in reversed(cls.__mro__):
            collected.extend(klass.__dict__.get("rules", ()))
        cls.validation_rules = tuple(collected)

    @property
    def errors(self) -> ErrorSet:
        errors = self.__dict__.get("_errors")
        if errors is None:
            errors = self.__dict__["_errors"] = ErrorSet()
        return errors

    def valid(self) -> bool:
        """Clear errors, run every rule and ``validate()``; True when no errors were added."""
        self.errors.clear()
        self.run_validations()
        return not self.errors

    def run_validations(self) -> None:
        for rule in self.validation_rules:
            rule.apply(self)
        self.validate()

    def validate(self) -> None:
        """Hook for validations that do not fit a rule."""
