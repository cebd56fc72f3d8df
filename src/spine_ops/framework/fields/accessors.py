"""Attribute descriptors generated for declared fields."""

from __future__ import annotations

from typing import Any


class FieldAccessor:
    """Routes ``op.<name>`` through ``get_field`` and ``op.<name> = v`` through ``set_field``."""

    def __init__(self, name: str, reader: bool = True, writer: bool = True):
        self.name = name
        self.reader = reader
        self.writer = writer

    def __repr__(self) -> str:
        return f"FieldAccessor({self.name!r}, reader={self.reader}, writer={self.writer})"

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        if not self.reader:
            raise AttributeError(f"'{type(instance).__name__}' field '{self.name}' has no reader")
        return instance.get_field(self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        if not self.writer:
            raise AttributeError(f"'{type(instance).__name__}' field '{self.name}' has no writer")
        instance.set_field(self.name, value)

    def __delete__(self, instance: Any) -> None:
        if not self.writer:
            raise AttributeError(f"'{type(instance).__name__}' field '{self.name}' has no writer")
        instance.clear_field(self.name)


class ConstantAccessor:
    """Read-only attribute returning a fixed value (non-polymorphic association type)."""

    def __init__(self, value: Any):
        self.value = value

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return self.value

    def __set__(self, instance: Any, value: Any) -> None:
        raise AttributeError("read-only attribute")


class GroupView:
    """Per-group params view: ``<group>_params``, ``without_<group>_params`` ..."""

    def __init__(self, group: str, view: str):
        self.group = group
        self.view = view

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        store = instance.param_groups
        if self.view == "params":
            return store.group_params(self.group)
        if self.view == "default_params":
            return store.group_default_params(self.group)
        if self.view == "params_with_defaults":
            return store.group_params_with_defaults(self.group)
        return store.without_group_params(self.group)


GROUP_VIEW_NAMES = {
    "params": "{group}_params",
    "default_params": "{group}_default_params",
    "params_with_defaults": "{group}_params_with_defaults",
    "without_params": "without_{group}_params",
}
