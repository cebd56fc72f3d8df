"""Entity registry and default entity lookup for association resolution.

Manifesto:
    Association fields store a key and (when polymorphic) a type name.
    Turning that pair back into an entity needs two collaborators: a
    registry mapping type names to classes, and a lookup that finds one
    entity of a class by attribute. Both are injectable per schema.

Tags:
    spine-ops, framework, registry, entity-lookup, associations

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import types
import typing
from decimal import Decimal
from typing import Any

from spine_ops.core.errors import ConfigurationError, EntityNotFoundError, EntityTypeNotFoundError
from spine_ops.framework.logging import get_logger

logger = get_logger(__name__)

_ANNOTATION_TAGS: dict[Any, str] = {
    int: "integer",
    str: "string",
    float: "number",
    Decimal: "decimal",
}


class EntityRegistry:
    """Maps type names (as stored in polymorphic type fields) to entity classes."""

    def __init__(self) -> None:
        self._types: dict[str, type] = {}
        self._lock = threading.RLock()

    def register(self, entity_type: type | None = None, *, name: str | None = None):
        """Register an entity class; usable bare or as a decorator.

        Usage:
            @register_entity
            class User: ...

            @register_entity(name="Member")
            class LegacyUser: ...
        """

        def decorator(cls: type) -> type:
            key = name or cls.__name__
            with self._lock:
                existing = self._types.get(key)
                if existing is not None and existing is not cls:
                    raise ConfigurationError(f"Entity type '{key}' is already registered")
                self._types[key] = cls
            logger.debug("entity_registered", name=key, cls=cls.__qualname__)
            return cls

        if entity_type is not None:
            return decorator(entity_type)
        return decorator

    def resolve(self, type_name: str | type) -> type:
        """Class registered under ``type_name`` (classes pass through)."""
        if isinstance(type_name, type):
            return type_name
        with self._lock:
            try:
                return self._types[str(type_name)]
            except KeyError:
                raise EntityTypeNotFoundError(str(type_name)) from None

    def name_for(self, entity_type: type) -> str:
        """Registered name of a class, else its ``__name__``."""
        with self._lock:
            for key, cls in self._types.items():
                if cls is entity_type:
                    return key
        return entity_type.__name__

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._types

    def clear(self) -> None:
        """Clear registry (for testing)."""
        with self._lock:
            self._types.clear()


default_registry = EntityRegistry()
register_entity = default_registry.register


def find_entity(
    entity_type: type,
    find_by: str,
    key: Any,
    *,
    unscoped: bool = False,
    raise_on_miss: bool = True,
) -> Any:
    """Default lookup: ``entity_type.find_by(**{find_by: key})``.

    ``unscoped=True`` is only forwarded when requested, so plain entity
    classes need not accept it.
    """
    finder = getattr(entity_type, "find_by", None)
    if not callable(finder):
        raise ConfigurationError(f"{entity_type.__name__} does not define a find_by() lookup")

    criteria = {find_by: key}
    entity = finder(unscoped=True, **criteria) if unscoped else finder(**criteria)
    if entity is None and raise_on_miss:
        raise EntityNotFoundError(entity_type.__name__, find_by, key)
    return entity


def infer_key_type(entity_type: type, attribute: str) -> str | None:
    """Type tag for ``entity_type.<attribute>``, from a hook or annotations.

    Entity classes may define ``type_for_attribute(name)`` returning a tag;
    otherwise the class annotations are consulted (``Optional[int]`` counts
    as ``int``). Returns None when nothing can be inferred.
    """
    hook = getattr(entity_type, "type_for_attribute", None)
    if callable(hook):
        return hook(attribute)

    try:
        hints = typing.get_type_hints(entity_type)
    except (NameError, TypeError):
        hints = getattr(entity_type, "__annotations__", {})
    annotation = hints.get(attribute)
    if annotation is None:
        return None

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) != 1:
            return None
        annotation = members[0]
    return _ANNOTATION_TAGS.get(annotation)
