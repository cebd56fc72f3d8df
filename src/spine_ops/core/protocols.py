"""
Canonical protocol definitions for spine-ops collaborators.

The engine never depends on a concrete validation library or persistence
layer. It talks to collaborators through the structural contracts below;
any object with the right shape works.

Architecture:
    ::

        protocols.py
        ├── ErrorSink       - field-keyed error collection (add, iterate, render)
        ├── ErrorRecord     - anything exposing ``errors`` (ops, entities, forms)
        ├── Validator       - ``valid()`` plus an ``errors`` sink
        ├── EntityLookup    - resolve (type, find_by, key, unscoped) to an entity
        └── FindableEntity  - entity class with a ``find_by`` classmethod

    Consumers:
        framework/error_set.py, framework/validation.py,
        framework/lookup.py, framework/operations/base.py

Guardrails:
    ❌ DON'T: Import a concrete validation library inside the engine
    ✅ DO: Accept any ErrorRecord when folding errors

Tags:
    protocol, collaborator, validation, lookup, spine-ops, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ErrorSink(Protocol):
    """Field-keyed error collection."""

    def add(self, field: str, message: str) -> None:
        """Attach ``message`` to ``field`` (``"base"`` for record-wide errors)."""
        ...

    def __iter__(self) -> Iterator[tuple[str, str]]:
        """Iterate ``(field, message)`` pairs in insertion order."""
        ...

    def full_message(self, field: str, message: str) -> str:
        """Render one error as a human-readable sentence."""
        ...

    def full_messages(self) -> list[str]:
        """Render every error."""
        ...


@runtime_checkable
class ErrorRecord(Protocol):
    """Anything that carries an error sink."""

    @property
    def errors(self) -> ErrorSink: ...


@runtime_checkable
class Validator(Protocol):
    """Validation collaborator consumed by submission."""

    @property
    def errors(self) -> ErrorSink: ...

    def valid(self) -> bool:
        """Run validations, repopulating ``errors``; True when none were added."""
        ...


@runtime_checkable
class EntityLookup(Protocol):
    """Resolves association keys to entities.

    Returns ``None`` for a miss when ``raise_on_miss`` is False; otherwise
    raises ``EntityNotFoundError`` (or lets the backend's own error through).
    """

    def __call__(
        self,
        entity_type: type,
        find_by: str,
        key: Any,
        *,
        unscoped: bool = False,
        raise_on_miss: bool = True,
    ) -> Any: ...


class FindableEntity(Protocol):
    """Entity class shape used by the default lookup."""

    @classmethod
    def find_by(cls, *, unscoped: bool = False, **criteria: Any) -> Any: ...
