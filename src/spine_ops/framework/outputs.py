"""
Output contracts for ops.

An op declares the results ``perform`` must produce. Values are written
with ``output(name, value)`` and checked after a successful perform: every
required output must be set and every typed output must match its type.
Lazy outputs store a zero-arg thunk that is evaluated (and type-checked) on
first read only.

Examples:
    >>> class CreateUserOp(Op):
    ...     created_user = Output(type=User)
    ...     audit = Output(required=False, lazy=True)
    ...
    ...     def perform(self):
    ...         self.output("created_user", User(email_address=self.email))
    ...         self.output("audit", lambda: build_audit_trail(self))

Tags:
    outputs, contracts, lazy-evaluation, spine-ops

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar

from spine_ops.core.errors import ConfigurationError, InvalidOutputTypeError, OutputNotSetError, UnknownOutputError
from spine_ops.framework.logging import get_logger

log = get_logger(__name__)


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


@dataclass(frozen=True)
class OutputSpec:
    """Declared output: required flag (or zero-arg predicate), optional type, laziness."""

    name: str
    required: bool | Callable[[], bool] = True
    type: type | tuple[type, ...] | None = None
    lazy: bool = False

    def is_required(self) -> bool:
        if callable(self.required):
            return bool(self.required())
        return bool(self.required)

    def accepts(self, value: Any) -> bool:
        return self.type is None or isinstance(value, self.type)

    @property
    def type_name(self) -> str | None:
        return _type_name(self.type) if self.type is not None else None


class _Thunk:
    __slots__ = ("fn",)

    def __init__(self, fn: Callable[[], Any]):
        self.fn = fn


class Output:
    """Class-body output declaration; reads return ``get_output(name)``."""

    def __init__(self, *, required: bool | Callable[[], bool] = True, type: Any = None, lazy: bool = False):
        self.options = {"required": required, "type": type, "lazy": lazy}
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        owner.declare_outputs(name, **self.options)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance.get_output(self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        instance.output(self.name, value)


class Outputs:
    """Mixin providing declared outputs."""

    output_configurations: ClassVar[dict[str, OutputSpec]] = {}

    _outputs: dict[str, Any]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.output_configurations = dict(cls.output_configurations)

    @classmethod
    def declare_outputs(cls, *names: str, **options: Any) -> None:
        """Declare outputs; ``required`` defaults to True."""
        if "output_configurations" not in cls.__dict__:
            cls.output_configurations = dict(cls.output_configurations)
        for name in names:
            spec = OutputSpec(name=str(name), **options)
            if spec.type is not None and not isinstance(spec.type, (type, tuple)):
                raise ConfigurationError(f"Output '{name}' type must be a class or tuple of classes")
            cls.output_configurations[spec.name] = spec
            log.debug("output_declared", op=cls.__name__, output=spec.name, lazy=spec.lazy)

    def setup_outputs(self) -> None:
        self._outputs = {}

    def output(self, name: str, value: Any) -> None:
        """Set an output; lazy outputs take a zero-arg callable."""
        spec = self.output_configurations.get(str(name))
        if spec is None:
            raise UnknownOutputError(str(name))
        if spec.lazy:
            if not callable(value):
                raise ConfigurationError(f"Lazy output '{name}' must be set to a zero-arg callable")
            value = _Thunk(value)
        self._outputs[spec.name] = value

    def get_output(self, name: str) -> Any:
        spec = self.output_configurations.get(str(name))
        if spec is None:
            raise UnknownOutputError(str(name))
        value = self._outputs.get(spec.name)
        if isinstance(value, _Thunk):
            value = value.fn()
            self._outputs[spec.name] = value
            self._check_type(spec, value)
        return value

    def output_set(self, name: str) -> bool:
        return str(name) in self._outputs

    @property
    def outputs(self) -> MappingProxyType:
        """All set outputs, realizing lazy ones."""
        return MappingProxyType({name: self.get_output(name) for name in list(self._outputs)})

    def validate_outputs(self) -> None:
        """Check required outputs are set and realized values match their types.

        Lazy outputs that have not been read are not evaluated.
        """
        for name, spec in self.output_configurations.items():
            required = spec.is_required()
            if name not in self._outputs:
                if required:
                    raise OutputNotSetError(name)
                continue
            value = self._outputs[name]
            if isinstance(value, _Thunk):
                continue
            if value is None and not required:
                continue
            self._check_type(spec, value)

    @staticmethod
    def _check_type(spec: OutputSpec, value: Any) -> None:
        if not spec.accepts(value):
            raise InvalidOutputTypeError(spec.name, spec.type_name, type(value).__name__)
