"""Field-keyed error collection used by ops and validatable entities."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

BASE = "base"


def humanize(name: str) -> str:
    """``email_address`` -> ``Email address``; a trailing ``_id`` is dropped."""
    text = str(name)
    if text.endswith("_id"):
        text = text[:-3]
    text = text.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


class ErrorSet:
    """Ordered ``(field, message)`` errors with human-readable rendering.

    Errors on ``"base"`` describe the record as a whole and render as the
    bare message.
    """

    def __init__(self, errors: Iterable[tuple[str, str]] = ()):
        self._errors: list[tuple[str, str]] = []
        for field, message in errors:
            self.add(field, message)

    def add(self, field: str, message: str) -> None:
        self._errors.append((str(field), str(message)))

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._errors))

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __contains__(self, field: object) -> bool:
        return any(f == field for f, _ in self._errors)

    def __getitem__(self, field: str) -> list[str]:
        return [m for f, m in self._errors if f == field]

    def __repr__(self) -> str:
        return f"ErrorSet({self._errors!r})"

    def clear(self) -> None:
        self._errors.clear()

    def to_dict(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for field, message in self._errors:
            out.setdefault(field, []).append(message)
        return out

    def full_message(self, field: str, message: str) -> str:
        if field == BASE:
            return message
        return f"{humanize(field)} {message}"

    def full_messages(self) -> list[str]:
        return [self.full_message(f, m) for f, m in self._errors]
