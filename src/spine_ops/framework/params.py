"""
Parameter store for op instances.

``ParamGroups`` holds every value bound to one op instance, partitioned by
where it came from:

    original          raw input bag, recorded once and never cast
    provided          cast values supplied by input or explicit assignment
    default           cast default values
    <group>           provided values of fields in ``group``
    <group>_default   default values of fields in ``group``

Provenance (which fields were explicitly provided) lives alongside the
partitions. Every derived view (merged params, per-group views) is memoized
and the memo is dropped on every write.

Manifesto:
    - **Authoritative partitions:** provided/default are the truth, views derive
    - **Fan-out writes:** a write reaches every group the field belongs to
    - **Read-only views:** callers get ``MappingProxyType`` snapshots
    - **No casting here:** values arrive already cast

Examples:
    >>> store = ParamGroups({"email": "a@b.com"})
    >>> store.write("email", "a@b.com", groups=("info",))
    >>> store.write("privileges", "min", provided=False)
    >>> dict(store.params)
    {'email': 'a@b.com'}
    >>> dict(store.params_with_defaults)
    {'privileges': 'min', 'email': 'a@b.com'}
    >>> dict(store.group_params("info"))
    {'email': 'a@b.com'}

Tags:
    params, partitions, provenance, caching, spine-ops

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any


def unwrap_inputs(inputs: Any) -> dict[str, Any]:
    """Turn an input bag (mapping, envelope or None) into a str-keyed dict.

    Envelopes exposing ``to_unsafe_dict()`` are unwrapped first.
    """
    if inputs is None:
        return {}
    if callable(getattr(inputs, "to_unsafe_dict", None)):
        inputs = inputs.to_unsafe_dict()
    if not isinstance(inputs, Mapping):
        raise TypeError(f"Op inputs must be a mapping, got {type(inputs).__name__}")
    return {str(k): v for k, v in inputs.items()}


class ParamGroups:
    """Per-instance partitioned parameter store with provenance and a view cache."""

    def __init__(self, original: Mapping[str, Any] | None = None, *, include_defaults: bool = False):
        self._original: dict[str, Any] = dict(original or {})
        self._provided: dict[str, Any] = {}
        self._defaults: dict[str, Any] = {}
        self._groups: dict[str, dict[str, Any]] = {}
        self._group_defaults: dict[str, dict[str, Any]] = {}
        self._provenance: set[str] = set()
        self._cache: dict[tuple[str, ...], MappingProxyType] = {}
        self.include_defaults = include_defaults

    def __repr__(self) -> str:
        return f"ParamGroups(provided={self._provided!r}, defaults={self._defaults!r})"

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def write(self, name: str, value: Any, groups: Iterable[str] = (), *, provided: bool = True) -> None:
        """Store a cast value in provided (or default) and each group partition."""
        if provided:
            self._provided[name] = value
            self._provenance.add(name)
            targets = self._groups
        else:
            self._defaults[name] = value
            targets = self._group_defaults
        for group in groups:
            targets.setdefault(group, {})[name] = value
        self._cache.clear()

    def clear(self, name: str, groups: Iterable[str] = ()) -> None:
        """Remove a provided value from provided and its group partitions.

        ``original`` and the default partitions are untouched, so later reads
        fall back to the default.
        """
        self._provided.pop(name, None)
        self._provenance.discard(name)
        for group in groups:
            self._groups.get(group, {}).pop(name, None)
        self._cache.clear()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def is_provided(self, name: str) -> bool:
        return name in self._provenance

    def read(self, name: str) -> Any:
        """Provided value when the field was provided, else its default."""
        if name in self._provenance:
            return self._provided.get(name)
        return self._defaults.get(name)

    def _memo(self, key: tuple[str, ...], build) -> MappingProxyType:
        view = self._cache.get(key)
        if view is None:
            view = MappingProxyType(build())
            self._cache[key] = view
        return view

    @property
    def original(self) -> MappingProxyType:
        return self._memo(("original",), lambda: dict(self._original))

    @property
    def provided_params(self) -> MappingProxyType:
        return self._memo(("provided",), lambda: dict(self._provided))

    @property
    def default_params(self) -> MappingProxyType:
        return self._memo(("default",), lambda: dict(self._defaults))

    @property
    def params_with_defaults(self) -> MappingProxyType:
        return self._memo(("with_defaults",), lambda: {**self._defaults, **self._provided})

    @property
    def params(self) -> MappingProxyType:
        """Provided values, merged over defaults when ``include_defaults`` is set."""
        if self.include_defaults:
            return self.params_with_defaults
        return self.provided_params

    def group_params(self, group: str) -> MappingProxyType:
        if self.include_defaults:
            return self.group_params_with_defaults(group)
        return self._memo(("group", group), lambda: dict(self._groups.get(group, {})))

    def group_default_params(self, group: str) -> MappingProxyType:
        return self._memo(("group_default", group), lambda: dict(self._group_defaults.get(group, {})))

    def group_params_with_defaults(self, group: str) -> MappingProxyType:
        return self._memo(
            ("group_with_defaults", group),
            lambda: {**self._group_defaults.get(group, {}), **self._groups.get(group, {})},
        )

    def without_group_params(self, group: str) -> MappingProxyType:
        """``params`` minus every key belonging to ``group``."""

        def build() -> dict[str, Any]:
            excluded = set(self._groups.get(group, {})) | set(self._group_defaults.get(group, {}))
            return {k: v for k, v in self.params.items() if k not in excluded}

        return self._memo(("without_group", group), build)
