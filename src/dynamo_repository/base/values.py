# src/dynamo_repository/base/values.py

"""
Typed value model shared by the request model, the expression compilers and
the marshal adapter.

Every field value, condition operand and update value is reduced once, at
construction, to a ``Value`` of one of six kinds. Compilers switch on
``Value.kind`` instead of inspecting Python types at compile time.
"""

import math
from dataclasses import dataclass, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Tuple

from .exceptions import UnsupportedValueType
from .utils import prepare_for_storage


class ValueKind(Enum):
    """The closed set of value kinds."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class Value:
    """
    An immutable tagged value.

    ``data`` holds, per kind: ``None``; a ``bool``; a ``Decimal``; a ``str``;
    a tuple of ``Value``; a tuple of ``(name, Value)`` pairs sorted by name.
    Because numbers are Decimals and map entries are sorted, values built
    from equal data compare (and hash) equal.
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """Builds a Value from plain Python data, raising UnsupportedValueType."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls(ValueKind.NULL)
        # bool first: bool is an int subclass
        if isinstance(obj, bool):
            return cls(ValueKind.BOOL, obj)
        if isinstance(obj, (int, float, Decimal)):
            return cls(ValueKind.NUMBER, _to_decimal(obj))
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, (list, tuple)):
            return cls(ValueKind.LIST, tuple(cls.of(item) for item in obj))
        if isinstance(obj, Mapping):
            entries = []
            for name, item in obj.items():
                if not isinstance(name, str):
                    raise UnsupportedValueType(
                        f"Map keys must be strings, got {type(name).__name__} ({name!r})."
                    )
                entries.append((name, cls.of(item)))
            return cls(ValueKind.MAP, tuple(sorted(entries, key=lambda e: e[0])))
        if isinstance(obj, (set, frozenset)) or _is_model(obj):
            return cls.of(prepare_for_storage(obj))
        raise UnsupportedValueType(
            f"Values of type {type(obj).__name__} are not supported ({obj!r})."
        )

    @property
    def is_numeric(self) -> bool:
        return self.kind is ValueKind.NUMBER

    @property
    def is_string(self) -> bool:
        return self.kind is ValueKind.STRING

    def to_python(self) -> Any:
        """Plain data with Decimal numbers, as accepted by boto3's TypeSerializer."""
        if self.kind is ValueKind.LIST:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.MAP:
            return {name: item.to_python() for name, item in self.data}
        return self.data

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.to_python()!r})"


def _is_model(obj: Any) -> bool:
    if is_dataclass(obj) and not isinstance(obj, type):
        return True
    return callable(getattr(obj, "model_dump", None))


def _to_decimal(number: Any) -> Decimal:
    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            raise UnsupportedValueType(f"Number {number!r} has no finite representation.")
        # str() keeps the shortest round-tripping form (0.1 -> "0.1")
        return Decimal(str(number))
    if isinstance(number, Decimal):
        if not number.is_finite():
            raise UnsupportedValueType(f"Number {number!r} has no finite representation.")
        return number
    return Decimal(number)


def canonical_key(mapping: Mapping[str, Any]) -> Tuple[Tuple[str, Value], ...]:
    """Sorted, hashable form of a key mapping used for structural equality."""
    return tuple(sorted(((name, Value.of(v)) for name, v in mapping.items()), key=lambda e: e[0]))
