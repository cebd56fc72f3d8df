"""
Field declaration and binding for op classes.

``Fields`` owns the per-class field table (``field_configurations``) and the
per-instance parameter store. Every read and write of a declared field goes
through ``get_field``/``set_field``, which dispatch on the spec's behavior:

    none                    cast and store in the ParamGroups store
    association             assign/resolve through the association cache
    association_component   store, then invalidate the owning association

Manifesto:
    - **Field table as data:** specs are immutable; classes copy on write
    - **Generated accessors:** one descriptor per field, reader/writer toggles
    - **Provenance-aware reads:** provided values win, defaults otherwise
    - **Filtered copying:** ``fields_from`` keeps association parts together

Examples:
    >>> class ProfileOp(Fields):
    ...     name = declarations.string(group="info")
    ...     age = declarations.integer(default=18)
    >>> op = ProfileOp()
    >>> op.setup_fields({"name": "Ada"})
    >>> dict(op.params), op.age, op.field_provided("age")
    ({'name': 'Ada'}, 18, False)

Tags:
    fields, schema, accessors, provenance, spine-ops

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, ClassVar

from spine_ops.core.errors import (
    ConfigurationError,
    ErrorContext,
    FieldRedefinitionError,
    MassAssignmentError,
    TypeCastError,
)
from spine_ops.core.protocols import EntityLookup
from spine_ops.core.settings import EngineSettings, get_settings
from spine_ops.framework.associations import resolution
from spine_ops.framework.associations.configuration import AssociationSpec, ComponentSpec
from spine_ops.framework.fields import declarations
from spine_ops.framework.fields.accessors import GROUP_VIEW_NAMES, ConstantAccessor, FieldAccessor, GroupView
from spine_ops.framework.fields.configuration import FieldBehavior, FieldSpec
from spine_ops.framework.logging import get_logger
from spine_ops.framework.lookup import EntityRegistry, default_registry, find_entity
from spine_ops.framework.params import ParamGroups, unwrap_inputs
from spine_ops.framework.type_caster import TypeCaster, type_caster

log = get_logger(__name__)


class Fields:
    """Mixin providing declared, typed, grouped fields."""

    field_configurations: ClassVar[dict[str, FieldSpec]] = {}
    field_groups: ClassVar[frozenset[str]] = frozenset()

    # Injected collaborators; None falls back to the process-wide defaults
    engine_settings: ClassVar[EngineSettings | None] = None
    include_defaults_in_params: ClassVar[bool | None] = None
    type_caster: ClassVar[TypeCaster] = type_caster
    entity_registry: ClassVar[EntityRegistry] = default_registry
    entity_lookup: ClassVar[EntityLookup] = staticmethod(find_entity)

    param_groups: ParamGroups

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.field_configurations = dict(cls.field_configurations)

    # =========================================================================
    # Declaration (class level)
    # =========================================================================

    @classmethod
    def resolve_settings(cls) -> EngineSettings:
        return cls.engine_settings or get_settings()

    @classmethod
    def field(cls, name: str, **options: Any) -> FieldSpec:
        """Declare a field; returns the registered spec."""
        return cls._register_field(FieldSpec.from_options(name, options))

    @classmethod
    def association(cls, name: str, **options: Any) -> AssociationSpec:
        """Declare an association plus its key (and type) component fields."""
        if "as_" in options:
            options["as"] = options.pop("as_")
        return cls._register_field(AssociationSpec.from_options(name, options))

    @classmethod
    def fields_from(
        cls,
        *schemas: type[Fields],
        except_: Iterable[str] | None = None,
        only: Iterable[str] | None = None,
        **options: Any,
    ) -> None:
        """Copy field specs from other schemas.

        ``except_`` and ``only`` are expanded to the related field names of
        each listed field, so an association always travels with its key
        and type fields. Extra ``options`` are merged into every copy.
        """
        for schema in schemas:
            excluded = cls._expand_names(schema, except_)
            included = cls._expand_names(schema, only) if only is not None else None

            selected = [
                spec
                for name, spec in schema.field_configurations.items()
                if name not in excluded and (included is None or name in included)
            ]
            association_names = {s.name for s in selected if isinstance(s, AssociationSpec)}
            for spec in selected:
                # components are re-synthesized by their association
                if isinstance(spec, ComponentSpec) and spec.association_name in association_names:
                    continue
                cls._register_field(spec.merge(**options) if options else spec)

    @staticmethod
    def _expand_names(schema: type[Fields], names: Iterable[str] | None) -> set[str]:
        if not names:
            return set()
        if isinstance(names, str):
            names = (names,)
        expanded: set[str] = set()
        for name in names:
            spec = schema.field_configurations.get(str(name))
            expanded.update(spec.related_field_names if spec else (str(name),))
        return expanded

    @classmethod
    def get_field_config(cls, name: str) -> FieldSpec | None:
        return cls.field_configurations.get(str(name))

    @classmethod
    def fields_in_group(cls, group: str) -> tuple[str, ...]:
        return tuple(name for name, spec in cls.field_configurations.items() if spec.in_group(group))

    @classmethod
    def _register_field(cls, spec: FieldSpec) -> FieldSpec:
        if "field_configurations" not in cls.__dict__:
            cls.field_configurations = dict(cls.field_configurations)

        if isinstance(spec, AssociationSpec):
            cls._register_association_components(spec)

        existing = cls.field_configurations.get(spec.name)
        if existing is not None and not spec.allow_overwrite:
            cls._on_redefinition(spec.name)

        cls._install_accessor(spec)
        cls.field_configurations[spec.name] = spec
        for group in spec.groups:
            cls._install_group_views(group)

        log.debug(
            "field_declared",
            op=cls.__name__,
            field=spec.name,
            type=str(spec.type) if spec.type is not None else None,
            behavior=spec.behavior.value,
        )
        return spec

    @classmethod
    def _register_association_components(cls, spec: AssociationSpec) -> None:
        inheritable = cls.resolve_settings().inheritable_field_options
        if spec.polymorphic:
            cls._register_field(spec.build_foreign_type_field(inheritable))
            key_type = None
        else:
            if spec.field_reader:
                setattr(cls, spec.foreign_type_method, ConstantAccessor(spec.inferred_type_name))
            key_type = resolution.key_type_resolver(cls, spec)
        cls._register_field(spec.build_foreign_key_field(inheritable, key_type))

    @classmethod
    def _on_redefinition(cls, name: str) -> None:
        behavior = cls.resolve_settings().field_redefinition_behavior
        if behavior == "error":
            raise FieldRedefinitionError(cls.__name__, name)
        if behavior == "warn":
            log.warning("field_redefined", op=cls.__name__, field=name)

    @classmethod
    def _install_accessor(cls, spec: FieldSpec) -> None:
        current = cls.__dict__.get(spec.name)
        if current is not None and not isinstance(current, (FieldAccessor, ConstantAccessor, declarations.Field)):
            raise ConfigurationError(
                f"Field '{spec.name}' conflicts with an existing attribute of {cls.__name__}"
            )
        setattr(cls, spec.name, FieldAccessor(spec.name, spec.field_reader, spec.field_writer))

    @classmethod
    def _install_group_views(cls, group: str) -> None:
        cls.field_groups = cls.field_groups | {group}
        for view, template in GROUP_VIEW_NAMES.items():
            attribute = template.format(group=group)
            if not hasattr(cls, attribute):
                setattr(cls, attribute, GroupView(group, view))

    # =========================================================================
    # Binding (instance level)
    # =========================================================================

    def _include_defaults(self) -> bool:
        if self.include_defaults_in_params is not None:
            return self.include_defaults_in_params
        return self.resolve_settings().include_defaults_in_params

    def setup_fields(self, inputs: Mapping[str, Any] | Any = None) -> None:
        """Bind an input bag: record it, then cast provided values and defaults."""
        inputs = unwrap_inputs(inputs)
        self.param_groups = ParamGroups(inputs, include_defaults=self._include_defaults())
        self._association_cache: dict[str, Any] = {}

        for name, spec in self.field_configurations.items():
            if name in inputs:
                if not spec.mass_assignable:
                    raise MassAssignmentError(name).with_context(op=type(self).__name__)
                self.set_field(name, inputs[name], provided=True)
            elif spec.has_default:
                self.set_field(name, spec.get_default(), provided=False)

    def _require_config(self, name: str) -> FieldSpec:
        spec = self.get_field_config(name)
        if spec is None:
            raise ConfigurationError(
                f"Unknown field '{name}' on {type(self).__name__}",
                context=ErrorContext(op=type(self).__name__, field=str(name)),
            )
        return spec

    def get_field(self, name: str) -> Any:
        spec = self._require_config(name)
        if spec.behavior is FieldBehavior.ASSOCIATION:
            return resolution.resolve(self, spec)
        return self.param_groups.read(spec.name)

    def set_field(self, name: str, value: Any, *, provided: bool = True) -> Any:
        """Cast and store ``value``; returns the stored value."""
        spec = self._require_config(name)
        if spec.behavior is FieldBehavior.ASSOCIATION:
            return resolution.assign(self, spec, value, provided=provided)

        cast_value = self._cast_field(spec, value)
        self.param_groups.write(spec.name, cast_value, spec.groups, provided=provided)
        if spec.behavior is FieldBehavior.ASSOCIATION_COMPONENT:
            resolution.invalidate(self, spec.association_name)
        return cast_value

    def clear_field(self, name: str) -> None:
        spec = self._require_config(name)
        if spec.behavior is FieldBehavior.ASSOCIATION:
            resolution.clear(self, spec)
            return
        self.param_groups.clear(spec.name, spec.groups)
        if spec.behavior is FieldBehavior.ASSOCIATION_COMPONENT:
            resolution.invalidate(self, spec.association_name)

    def field_provided(self, name: str) -> bool:
        """True when the field was supplied as input or set explicitly; False for unknown names."""
        spec = self.get_field_config(name)
        if spec is None:
            return False
        if spec.behavior is FieldBehavior.ASSOCIATION:
            return resolution.provided(self, spec)
        return self.param_groups.is_provided(spec.name)

    def _cast_field(self, spec: FieldSpec, value: Any) -> Any:
        try:
            return self.type_caster.cast(value, spec.cast_options(), settings=self.resolve_settings())
        except TypeCastError as e:
            raise TypeCastError(
                f"Error for field `{spec.name}`: {e}",
                context=ErrorContext(op=type(self).__name__, field=spec.name),
                cause=e,
            ) from e

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def params(self) -> MappingProxyType:
        return self.param_groups.params

    @property
    def original_params(self) -> MappingProxyType:
        return self.param_groups.original

    @property
    def provided_params(self) -> MappingProxyType:
        return self.param_groups.provided_params

    @property
    def default_params(self) -> MappingProxyType:
        return self.param_groups.default_params

    defaults = default_params

    @property
    def params_with_defaults(self) -> MappingProxyType:
        return self.param_groups.params_with_defaults

    @property
    def params_with_associations(self) -> MappingProxyType:
        return resolution.params_with_associations(self)
