"""Per-instance association assignment, lazy resolution and caching.

Functions here operate on an op (any ``Fields`` instance) and an
``AssociationSpec``. The resolved entity is cached on the instance in
``_association_cache`` keyed by association name; writing a component field
drops the cached entity so the next read resolves again.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from spine_ops.core.errors import AssociationTypeMismatchError
from spine_ops.framework.associations.configuration import AssociationSpec
from spine_ops.framework.fields.configuration import FieldBehavior
from spine_ops.framework.logging import get_logger
from spine_ops.framework.lookup import infer_key_type
from spine_ops.framework.type_caster import is_blank

if TYPE_CHECKING:
    from spine_ops.framework.fields.mixin import Fields

log = get_logger(__name__)

# a cached None is a resolved miss, kept until a component write drops it
_MISSING = object()


def target_type(schema: type[Fields], spec: AssociationSpec) -> type:
    """Declared (non-polymorphic) target class of an association."""
    return schema.entity_registry.resolve(spec.class_name or spec.inferred_type_name)


def key_type_resolver(schema: type[Fields], spec: AssociationSpec):
    """Zero-arg callable inferring the key's type tag when the key is cast.

    Inference is deferred because entity classes are often registered after
    the op class that references them.
    """

    def resolve_key_type() -> str | None:
        try:
            entity_type = target_type(schema, spec)
        except LookupError:
            return None
        return infer_key_type(entity_type, spec.find_by)

    return resolve_key_type


def assign(op: Fields, spec: AssociationSpec, value: Any, *, provided: bool = True) -> Any:
    """Store an entity's key (and type) and cache the entity itself."""
    if value is not None and not spec.polymorphic:
        expected = target_type(type(op), spec)
        actual = type(value)
        if not (issubclass(actual, expected) or issubclass(expected, actual)):
            message = f"{expected.__name__} expected, got {actual.__name__}"
            errors = getattr(op, "errors", None)
            if errors is not None:
                errors.add("base", message)
            raise AssociationTypeMismatchError(op, message)

    if spec.polymorphic:
        type_name = op.entity_registry.name_for(type(value)) if value is not None else None
        op.set_field(spec.foreign_type_method, type_name, provided=provided)
    key = getattr(value, spec.find_by) if value is not None else None
    op.set_field(spec.foreign_key_method, key, provided=provided)

    op._association_cache[spec.name] = value
    return value


def resolve(op: Fields, spec: AssociationSpec) -> Any:
    """Cached entity, else look it up from the stored key (and type)."""
    cached = op._association_cache.get(spec.name, _MISSING)
    if cached is not _MISSING:
        return cached

    key = op.get_field(spec.foreign_key_method)
    if is_blank(key):
        return None

    if spec.polymorphic:
        type_name = op.get_field(spec.foreign_type_method)
        if is_blank(type_name):
            return None
        entity_type = op.entity_registry.resolve(type_name)
    else:
        entity_type = target_type(type(op), spec)

    lookup = type(op).entity_lookup
    entity = lookup(
        entity_type,
        spec.find_by,
        key,
        unscoped=spec.unscoped,
        raise_on_miss=spec.raise_on_miss,
    )
    log.debug(
        "association_resolved",
        op=type(op).__name__,
        association=spec.name,
        entity_type=entity_type.__name__,
        found=entity is not None,
    )
    op._association_cache[spec.name] = entity
    return entity


def invalidate(op: Fields, association_name: str) -> None:
    op._association_cache.pop(association_name, None)


def clear(op: Fields, spec: AssociationSpec) -> None:
    """Clear the component fields and forget the cached entity."""
    if spec.polymorphic:
        op.clear_field(spec.foreign_type_method)
    op.clear_field(spec.foreign_key_method)
    invalidate(op, spec.name)


def provided(op: Fields, spec: AssociationSpec) -> bool:
    """True only when the key (and, for polymorphic associations, the type) was provided."""
    if spec.polymorphic and not op.field_provided(spec.foreign_type_method):
        return False
    return op.field_provided(spec.foreign_key_method)


def params_with_associations(op: Fields) -> MappingProxyType:
    """``params`` with component keys replaced by their provided, resolved entities."""
    associations = [
        spec
        for spec in op.field_configurations.values()
        if spec.behavior is FieldBehavior.ASSOCIATION
    ]
    if not associations:
        return op.params

    excluded = {name for spec in associations for name in spec.related_field_names}
    out = {k: v for k, v in op.params.items() if k not in excluded}
    for spec in associations:
        if provided(op, spec):
            out[spec.name] = op.get_field(spec.name)
    return MappingProxyType(out)
