"""Process-wide engine settings.

The engine reads a handful of switches that are shared by every schema in a
process: whether ``*_params`` views merge defaults, which options an
association passes on to its component fields, whether time casting keeps
sub-second precision, and how field redefinition is reported.

Manifesto:
    Configuration should be explicit, validated, and environment-driven,
    and it should be set once at process start. Schemas may pin their own
    ``engine_settings`` so tests stay hermetic.

    - **Pydantic validation:** Type-checked when first read
    - **Environment-driven:** ``SPINE_OPS_*`` env vars and ``.env`` files
    - **Init-once:** ``configure()`` refuses to silently replace settings
    - **Scoped overrides:** ``override_settings()`` for tests

Examples:
    >>> from spine_ops.core.settings import get_settings, override_settings
    >>> get_settings().include_defaults_in_params
    False
    >>> with override_settings(include_defaults_in_params=True):
    ...     get_settings().include_defaults_in_params
    True

Tags:
    settings, configuration, pydantic, environment, spine-ops

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from spine_ops.core.errors import ConfigurationError

DEFAULT_INHERITABLE_FIELD_OPTIONS = frozenset(
    {"mass_assignable", "field_reader", "field_writer", "groups", "aka"}
)


class EngineSettings(BaseSettings):
    """Switches read by the engine during schema declaration and submission.

    Fields
    ──────
    include_defaults_in_params  : ``params`` and ``<group>_params`` merge defaults
    inheritable_field_options   : Association options copied onto key/type fields
    preserve_time_precision     : Time casters keep microseconds
    field_redefinition_behavior : ``error`` | ``warn`` | ``ignore`` on redeclaration
    """

    model_config = SettingsConfigDict(
        env_prefix="SPINE_OPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    include_defaults_in_params: bool = False
    inheritable_field_options: frozenset[str] = Field(
        default=DEFAULT_INHERITABLE_FIELD_OPTIONS,
        description="Options an association passes on to its component fields",
    )
    preserve_time_precision: bool = False
    field_redefinition_behavior: Literal["error", "warn", "ignore"] = "warn"

    @field_validator("field_redefinition_behavior", mode="before")
    @classmethod
    def _normalize_behavior(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


_lock = threading.RLock()
_settings: EngineSettings | None = None
_configured = False


def get_settings() -> EngineSettings:
    """Return the process settings, building them from the environment on first use."""
    global _settings
    with _lock:
        if _settings is None:
            _settings = EngineSettings()
        return _settings


def configure(settings: EngineSettings | None = None, *, force: bool = False, **overrides: Any) -> EngineSettings:
    """
    Install the process settings.

    Intended to be called once at process start. A second call raises
    ``ConfigurationError`` unless ``force=True``.

    Args:
        settings: A prebuilt settings object (overrides are applied on top)
        force: Replace settings that were already configured
        **overrides: Field values passed to ``EngineSettings``
    """
    global _settings, _configured
    with _lock:
        if _configured and not force:
            raise ConfigurationError("spine-ops settings have already been configured")
        if settings is None:
            settings = EngineSettings(**overrides)
        elif overrides:
            settings = settings.model_copy(update=overrides)
        _settings = settings
        _configured = True
        return settings


def reset_settings() -> None:
    """Forget configured settings; the next read rebuilds from the environment."""
    global _settings, _configured
    with _lock:
        _settings = None
        _configured = False


@contextmanager
def override_settings(**overrides: Any) -> Iterator[EngineSettings]:
    """Temporarily replace individual settings.

    Example:
        >>> with override_settings(preserve_time_precision=True):
        ...     assert get_settings().preserve_time_precision
        >>> # Original settings restored
    """
    global _settings
    with _lock:
        previous = _settings
        _settings = get_settings().model_copy(update=overrides)
        current = _settings
    try:
        yield current
    finally:
        with _lock:
            _settings = previous
