"""Type-directed coercion of raw declaration values."""
from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Union

TRUE_STRINGS = frozenset({"true", "1", "yes", "y"})

_LEADING_FLOAT = re.compile(
    r"^\s*[+-]?(?:infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)",
    re.IGNORECASE,
)
_LEADING_INT = re.compile(r"^\s*([+-]?[0-9]+)")


class DataType(str, Enum):
    STRING = "string"
    FLOAT = "float"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    FLAG = "flag"

    @classmethod
    def from_token(cls, token: Union[str, "DataType"]) -> "DataType":
        if isinstance(token, DataType):
            return token
        return cls(token)


class _Unset:
    """Marker for a declaration that carries no value at all."""

    _instance = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"

    def __reduce__(self):
        return (_Unset, ())


UNSET = _Unset()


def coerce(value: Any, data_type: Union[str, DataType]) -> Any:
    """Convert ``value`` to ``data_type``.

    ``UNSET`` and ``None`` pass through untouched. Invalid numeric input
    degrades to ``math.nan`` and invalid boolean input to ``False``; this
    function never raises for a known data type.
    """
    if value is UNSET or value is None:
        return value
    data_type = DataType.from_token(data_type)
    if data_type in (DataType.STRING, DataType.FLAG):
        return _to_string(value)
    if data_type is DataType.FLOAT:
        return _to_float(value)
    if data_type is DataType.INTEGER:
        return _to_integer(value)
    if data_type is DataType.NUMBER:
        return _to_number(value)
    if data_type is DataType.BOOLEAN:
        return _to_boolean(value)
    return value


def is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT.match(str(value))
    if not match:
        return math.nan
    text = match.group(0).strip()
    if text.lower().lstrip("+-") == "infinity":
        return -math.inf if text.startswith("-") else math.inf
    return float(text)


def _to_integer(value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return value
        if value.is_integer():
            return int(value)
        # Half rounds toward positive infinity.
        return int(math.floor(value + 0.5))
    match = _LEADING_INT.match(str(value))
    if not match:
        return math.nan
    return int(match.group(1))


def _to_number(value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    if not text:
        return 0
    # Only the spelled-out "Infinity" counts as numeric text.
    if text.lower().lstrip("+-") in ("inf", "nan") or "_" in text or not text.isascii():
        return math.nan
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return math.nan


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in TRUE_STRINGS
    if is_nan(value):
        return False
    return bool(value)
