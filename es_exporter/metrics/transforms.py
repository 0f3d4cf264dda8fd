"""Functions turning an extracted JSON value into a gauge value.

Every transform accepts the raw value and returns a float, raising
:class:`~es_exporter.errors.TypeMismatch` when the value has an unusable type.
A value of the right type never fails: ``CategoricalEquals("green")`` maps
``"red"`` to ``0.0``.
"""

from dataclasses import dataclass
from typing import Any, Callable

from ..errors import NotNumeric, TypeMismatch


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


@dataclass(frozen=True)
class Identity:
    def __call__(self, value: Any) -> float:
        # JSON booleans decode to bool, which is an int subclass.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise NotNumeric(f"expected a number, got {_type_name(value)}")
        return float(value)


@dataclass(frozen=True)
class CategoricalEquals:
    category: str

    def __call__(self, value: Any) -> float:
        if not isinstance(value, str):
            raise TypeMismatch(f"expected a string, got {_type_name(value)}")
        return 1.0 if value == self.category else 0.0


@dataclass(frozen=True)
class Boolean:
    def __call__(self, value: Any) -> float:
        if not isinstance(value, bool):
            raise TypeMismatch(f"expected a boolean, got {_type_name(value)}")
        return 1.0 if value else 0.0


@dataclass(frozen=True)
class Custom:
    function: Callable[[Any], float]

    def __call__(self, value: Any) -> float:
        try:
            return float(self.function(value))
        except TypeMismatch:
            raise
        except Exception as exc:
            raise TypeMismatch(f"{type(exc).__name__}: {exc}") from exc


IDENTITY = Identity()
BOOLEAN = Boolean()

Transform = Callable[[Any], float]
