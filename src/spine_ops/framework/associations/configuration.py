"""Association specifications.

An association is one logical field (``user``) backed by a foreign key
(``user_id``) and, when polymorphic, a foreign type (``user_type``). The
spec records how to find the target entity and synthesizes the component
field specs that store the key and type.

Examples:
    >>> spec = AssociationSpec.from_options("owner", {"polymorphic": True})
    >>> spec.foreign_key_method, spec.foreign_type_method
    ('owner_id', 'owner_type')
    >>> spec.related_field_names
    ('owner_type', 'owner_id', 'owner')
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar

from spine_ops.core.errors import ConfigurationError
from spine_ops.framework.fields.configuration import FieldBehavior, FieldSpec


def camelize(name: str) -> str:
    """``inbound_user_request`` -> ``InboundUserRequest``."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\s]+", name) if part)


@dataclasses.dataclass(frozen=True)
class ComponentSpec(FieldSpec):
    """Key or type field synthesized for an association."""

    behavior: ClassVar[FieldBehavior] = FieldBehavior.ASSOCIATION_COMPONENT

    association_name: str = ""


@dataclasses.dataclass(frozen=True)
class AssociationSpec(FieldSpec):
    """
    Field spec for an entity reference.

    Attributes:
        source_name: The declared name; key, type and class names derive from it
        polymorphic: Target type is stored per instance in the type field
        class_name: Target class or registered type name
        foreign_key: Custom key field name (exclusive with ``as``)
        foreign_type: Custom type field name
        find_by: Attribute on the target the key refers to
        unscoped: Ask the lookup to bypass default filtering
        raise_on_miss: Lookup misses raise rather than yield None
        foreign_key_type: Explicit tag for the key field
    """

    behavior: ClassVar[FieldBehavior] = FieldBehavior.ASSOCIATION

    source_name: str = ""
    polymorphic: bool = False
    class_name: Any = None
    foreign_key: str | None = None
    foreign_type: str | None = None
    find_by: str = "id"
    unscoped: bool = False
    raise_on_miss: bool = True
    foreign_key_type: Any = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.source_name:
            object.__setattr__(self, "source_name", self.name)

    @classmethod
    def from_options(cls, name: str, options: Mapping[str, Any] | None = None) -> AssociationSpec:
        opts = dict(options or {})
        as_name = opts.pop("as", None) or opts.pop("as_", None)
        if as_name and opts.get("foreign_key"):
            raise ConfigurationError(
                f"Association `{name}` cannot declare both `as` and `foreign_key`"
            )
        opts.pop("type", None)
        if as_name:
            opts.setdefault("source_name", name)
            name = as_name
        return super().from_options(name, opts)

    # -------------------------------------------------------------------------
    # Derived names
    # -------------------------------------------------------------------------

    @property
    def foreign_key_method(self) -> str:
        return self.foreign_key or f"{self.source_name}_id"

    @property
    def foreign_type_method(self) -> str:
        if self.foreign_type:
            return self.foreign_type
        key = self.foreign_key_method
        if key.endswith("_id"):
            return f"{key[:-3]}_type"
        return f"{key}_type"

    @property
    def inferred_type_name(self) -> str:
        if isinstance(self.class_name, type):
            return self.class_name.__name__
        if self.class_name:
            return str(self.class_name)
        return camelize(self.source_name)

    @property
    def related_field_names(self) -> tuple[str, ...]:
        names = []
        if self.polymorphic:
            names.append(self.foreign_type_method)
        names.append(self.foreign_key_method)
        names.append(self.name)
        return tuple(names)

    # -------------------------------------------------------------------------
    # Component synthesis
    # -------------------------------------------------------------------------

    def _component_options(self, inheritable: Iterable[str]) -> dict[str, Any]:
        options = self.inheritable_options(inheritable)
        options["allow_overwrite"] = self.allow_overwrite
        options["association_name"] = self.name
        return options

    def build_foreign_key_field(
        self,
        inheritable: Iterable[str],
        key_type: str | Callable[[], str | None] | None = None,
    ) -> ComponentSpec:
        options = self._component_options(inheritable)
        options["type"] = "foreign_key"
        options["foreign_key_type"] = self.foreign_key_type or key_type
        return ComponentSpec.from_options(self.foreign_key_method, options)

    def build_foreign_type_field(self, inheritable: Iterable[str]) -> ComponentSpec:
        options = self._component_options(inheritable)
        options["type"] = "string"
        return ComponentSpec.from_options(self.foreign_type_method, options)
