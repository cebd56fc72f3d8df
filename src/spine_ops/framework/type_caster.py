"""Type caster registry for coercing raw op inputs to declared types.

Every field may name a type tag (``"integer"``, ``"time"``, ``"array"`` ...).
When a value is written to the field it is passed through the caster
registered for that tag. Casting is coercion, not validation: validations run
against the cast values, never the raw inputs.

Manifesto:
    Untrusted input arrives as strings, numbers, nested mappings, envelopes
    and uploads. A single registry of small, pure functions turns that into
    predictable Python values so op code never re-parses input.

    - **Pure casters:** ``(value, options, context) -> value``
    - **Pass-through on None:** absent values are never coerced
    - **Uniform failures:** any error becomes ``TypeCastError`` chained to the original
    - **Extensible:** ``register(*tags)`` adds or replaces casters

Examples:
    >>> from spine_ops.framework.type_caster import cast
    >>> cast("4.5", {"type": "integer"})
    4
    >>> cast("Yes", {"type": "boolean"})
    True
    >>> cast(["3", "4.2"], {"type": "array", "of": "integer"})
    [3, 4]

Tags:
    type-casting, coercion, registry, spine-ops, input-binding

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import base64
import re
import tempfile
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

from dateutil import parser as date_parser
from pydantic import BaseModel

from spine_ops.core.errors import TypeCastError
from spine_ops.core.settings import EngineSettings, get_settings
from spine_ops.core.timestamps import ensure_utc, to_iso8601_millis

Caster = Callable[[Any, Mapping[str, Any], "CastContext"], Any]

# Python types accepted wherever a tag is expected
PYTHON_TYPE_TAGS: dict[type, str] = {
    int: "integer",
    float: "number",
    str: "string",
    bool: "boolean",
    Decimal: "decimal",
    datetime: "time",
    date: "date",
    dict: "object",
    list: "array",
}

_NUMERIC_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_TRUTHY = re.compile(r"yes|true|1|ok", re.IGNORECASE)


def is_blank(value: Any) -> bool:
    """True for None, False, whitespace-only strings and empty containers."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (bytes, Mapping, list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def normalize_tag(tag: Any) -> Any:
    """Map Python types onto their registry tag; strings pass through."""
    if isinstance(tag, type):
        return PYTHON_TYPE_TAGS.get(tag, tag)
    return tag


@dataclass(frozen=True)
class CastContext:
    """Handed to each caster for nested casts and settings access."""

    caster: TypeCaster
    settings: EngineSettings

    def cast(self, value: Any, **options: Any) -> Any:
        return self.caster.cast(value, options, settings=self.settings)


class TypeCaster:
    """Registry mapping type tags to caster functions."""

    def __init__(self, casters: Mapping[Any, Caster] | None = None):
        self._casters: dict[Any, Caster] = dict(casters or {})
        self._lock = threading.RLock()

    @property
    def casters(self) -> Mapping[Any, Caster]:
        return MappingProxyType(self._casters)

    def __contains__(self, tag: Any) -> bool:
        return normalize_tag(tag) in self._casters

    def register(self, *tags: Any, fn: Caster | None = None):
        """Register ``fn`` for every tag; usable as a decorator.

        Usage:
            @type_caster.register("money")
            def cast_money(value, options, context):
                return Money(value)
        """

        def decorator(caster: Caster) -> Caster:
            with self._lock:
                for tag in tags:
                    self._casters[normalize_tag(tag)] = caster
            return caster

        if fn is not None:
            return decorator(fn)
        return decorator

    def copy(self) -> TypeCaster:
        """Independent registry seeded with this one's casters."""
        return TypeCaster(self._casters)

    def cast(
        self,
        value: Any,
        options: Mapping[str, Any] | None = None,
        *,
        settings: EngineSettings | None = None,
    ) -> Any:
        """Cast ``value`` using the caster for ``options["type"]``.

        None values, missing types and unregistered types pass through
        unchanged.

        Raises:
            TypeCastError: The caster raised; the original error is chained.
        """
        options = options or {}
        tag = normalize_tag(options.get("type"))
        if value is None or tag is None:
            return value

        caster = self._casters.get(tag)
        if caster is None:
            return value

        context = CastContext(self, settings or get_settings())
        try:
            return caster(value, options, context)
        except TypeCastError:
            raise
        except Exception as e:
            raise TypeCastError(str(e), cause=e) from e


type_caster = TypeCaster()
register = type_caster.register
cast = type_caster.cast


# =============================================================================
# Numeric casters
# =============================================================================


def _numeric_text(value: str) -> str | None:
    match = _NUMERIC_PREFIX.match(value.replace("_", ""))
    return match.group(1) if match else None


def _to_float(value: Any) -> float:
    if isinstance(value, str):
        text = _numeric_text(value)
        return float(text) if text else 0.0
    return float(value)


@register("number", "float")
def cast_number(value: Any, options: Mapping[str, Any], context: CastContext) -> Any:
    """Blank is None; the first ``methods`` entry the value supports wins, else float."""
    if is_blank(value):
        return None
    for method in options.get("methods") or ():
        if callable(getattr(value, method, None)):
            return getattr(value, method)()
    return _to_float(value)


@register("integer", "int", "epoch")
def cast_integer(value: Any, options: Mapping[str, Any], context: CastContext) -> Any:
    if is_blank(value):
        return None
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        text = _numeric_text(value)
        if not text:
            return 0
        if text.lstrip("+-").isdigit():
            return int(text)
        return int(float(text))
    return int(value)


@register("decimal", "big_decimal")
def cast_decimal(value: Any, options: Mapping[str, Any], context: CastContext) -> Any:
    """Arbitrary-precision decimal; unparseable text becomes zero."""
    if is_blank(value):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        text = _numeric_text(value)
        try:
            return Decimal(text) if text else Decimal(0)
        except InvalidOperation:
            return Decimal(0)
    try:
        return Decimal(value)
    except (TypeError, ValueError, InvalidOperation):
        return _to_float(value)


# =============================================================================
# Text and boolean casters
# =============================================================================


@register("string", "text")
def cast_string(value: Any, options: Mapping[str, Any], context: CastContext) -> str:
    return str(value)


@register("boolean", "bool")
def cast_boolean(value: Any, options: Mapping[str, Any], context: CastContext) -> bool:
    return _TRUTHY.fullmatch(str(value)) is not None


# =============================================================================
# Date and time casters
# =============================================================================


def _parse_time(value: Any) -> datetime:
    if isinstance(value, (datetime, date)):
        return ensure_utc(value)
    return ensure_utc(date_parser.parse(str(value)))


@register("date")
def cast_date(value: Any, options: Mapping[str, Any], context: CastContext) -> date | None:
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(str(value)).date()


@register("time", "timestamp", "datetime")
def cast_time(value: Any, options: Mapping[str, Any], context: CastContext) -> datetime | None:
    """UTC datetime; microseconds dropped unless ``precision="high"`` or settings keep them."""
    if is_blank(value):
        return None
    parsed = _parse_time(value)
    if options.get("precision") == "high" or context.settings.preserve_time_precision:
        return parsed
    return parsed.replace(microsecond=0)


@register("iso_date")
def cast_iso_date(value: Any, options: Mapping[str, Any], context: CastContext) -> str | None:
    parsed = cast_date(value, options, context)
    return parsed.isoformat() if parsed is not None else None


@register("iso_time")
def cast_iso_time(value: Any, options: Mapping[str, Any], context: CastContext) -> str | None:
    if is_blank(value):
        return None
    return to_iso8601_millis(_parse_time(value))


# =============================================================================
# Container casters
# =============================================================================


def _unwrap(value: Any) -> Any:
    if callable(getattr(value, "to_unsafe_dict", None)):
        return {k: _unwrap(v) for k, v in value.to_unsafe_dict().items()}
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


@register("object", "hash", "hashmap", "dict")
def cast_object(value: Any, options: Mapping[str, Any], context: CastContext) -> dict:
    """Map-like values pass through; envelopes unwrap; pairs become a dict."""
    value = _unwrap(value)
    if isinstance(value, dict):
        return value
    if is_blank(value):
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return dict(value)
    return {}


@register("array")
def cast_array(value: Any, options: Mapping[str, Any], context: CastContext) -> list:
    if is_blank(value):
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        items = [value]
    element_type = options.get("of")
    if element_type is not None:
        items = [context.cast(item, type=element_type) for item in items]
    return items


# =============================================================================
# Reference and upload casters
# =============================================================================


@register("foreign_key")
def cast_foreign_key(value: Any, options: Mapping[str, Any], context: CastContext) -> Any:
    """Cast by ``foreign_key_type`` (tag or zero-arg callable), else by ``_id`` naming."""
    if is_blank(value):
        return None
    key_type = options.get("foreign_key_type")
    if callable(key_type) and not isinstance(key_type, type):
        key_type = key_type()
    if key_type:
        return context.cast(value, type=key_type)
    if str(options.get("name") or "").endswith("_id"):
        return context.cast(value, type="integer")
    return value


@register("file")
def cast_file(value: Any, options: Mapping[str, Any], context: CastContext) -> Any:
    """File-like values pass through; raw content is written to a rewound temp file."""
    if is_blank(value):
        return None
    if callable(getattr(value, "read", None)):
        return value
    if options.get("base64"):
        value = base64.b64decode(value)
    if isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    elif not isinstance(value, bytes):
        value = str(value).encode("utf-8")
    handle = tempfile.NamedTemporaryFile(prefix="spine_ops_")
    handle.write(value)
    handle.seek(0)
    return handle

