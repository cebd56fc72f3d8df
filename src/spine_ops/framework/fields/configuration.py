"""Field specifications: the immutable per-field descriptors of a schema."""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, ClassVar

from spine_ops.core.errors import ConfigurationError

PROTECTED_GROUP_IDENTIFIERS = frozenset({"all", "original", "default"})


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


class FieldBehavior(str, Enum):
    """How ``get_field``/``set_field`` dispatch for a field."""

    NONE = "none"
    ASSOCIATION = "association"
    ASSOCIATION_COMPONENT = "association_component"


def _as_names(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(v) for v in value)
    return (str(value),)


@dataclasses.dataclass(frozen=True)
class FieldSpec:
    """
    Immutable descriptor of one declared input.

    Attributes:
        name: Field name, unique per schema
        type: Type tag (or Python type) used for casting, or None
        default: Literal or zero-arg producer; ``NO_DEFAULT`` when absent
        groups: Group names the field belongs to
        mass_assignable: Whether the constructor input may set the field
        field_reader: Whether an attribute reader is generated
        field_writer: Whether an attribute writer is generated
        aka: Alias names used when remapping inherited errors
        allow_overwrite: Redeclaring the field is intentional
        options: Extra casting options (``of``, ``precision``, ``base64`` ...)
    """

    behavior: ClassVar[FieldBehavior] = FieldBehavior.NONE

    name: str
    type: Any = None
    default: Any = NO_DEFAULT
    groups: tuple[str, ...] = ()
    mass_assignable: bool = True
    field_reader: bool = True
    field_writer: bool = True
    aka: tuple[str, ...] = ()
    allow_overwrite: bool = False
    options: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "groups", _as_names(self.groups))
        object.__setattr__(self, "aka", _as_names(self.aka))
        for group in self.groups:
            if group in PROTECTED_GROUP_IDENTIFIERS:
                raise ConfigurationError(
                    f"Cannot assign a field to protected group `{group}`. "
                    f"Protected groups are: {', '.join(sorted(PROTECTED_GROUP_IDENTIFIERS))}"
                )

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def attribute_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in dataclasses.fields(cls)) - {"name", "options"}

    @classmethod
    def from_options(cls, name: str, options: Mapping[str, Any] | None = None) -> FieldSpec:
        """Build a spec from declaration keyword options.

        Known option names become attributes; everything else is kept in
        ``options`` and handed to the type caster.
        """
        opts = dict(options or {})
        if "group" in opts:
            groups = _as_names(opts.get("groups"))
            opts["groups"] = groups + tuple(g for g in _as_names(opts.pop("group")) if g not in groups)
        known = cls.attribute_names()
        attributes = {k: opts.pop(k) for k in list(opts) if k in known}
        return cls(name=str(name), options=opts, **attributes)

    def to_options(self) -> dict[str, Any]:
        """Inverse of ``from_options``."""
        out = {k: getattr(self, k) for k in self.attribute_names()}
        out.update(self.options)
        return out

    def merge(self, **options: Any) -> FieldSpec:
        """A copy of this spec with ``options`` applied over it."""
        return type(self).from_options(self.name, {**self.to_options(), **options})

    def renamed(self, name: str) -> FieldSpec:
        return dataclasses.replace(self, name=name)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def get_default(self) -> Any:
        """Resolve the default: call producers, copy literal values."""
        if not self.has_default:
            return None
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)

    def in_group(self, group: str) -> bool:
        return group in self.groups

    def cast_options(self) -> dict[str, Any]:
        return {**self.options, "type": self.type, "name": self.name}

    def inheritable_options(self, keys: Iterable[str]) -> dict[str, Any]:
        """Options passed on to fields synthesized from this one."""
        return {k: getattr(self, k) for k in keys if k in self.attribute_names()}

    @property
    def related_field_names(self) -> tuple[str, ...]:
        """Names that must travel with this field when copied or filtered."""
        return (self.name,)
