"""
Small numeric and record-access helpers shared by the validation modules
"""

import math
from typing import Any, Mapping


def round_half_up(value: float) -> float:
    """Round to the nearest integer with .5 going up (not banker's rounding)"""
    return math.floor(value + 0.5)


def is_number(value: Any) -> bool:
    """True for real ints/floats, excluding bools"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    """True for real numbers that fit a finite float; huge ints count as invalid"""
    if not is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def to_number(value: Any) -> float:
    """
    Coerce an upstream value to a finite float

    Strings are parsed, booleans count as 0/1 and anything unparseable or
    non-finite becomes 0. Never raises.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def format_number(value: float) -> str:
    """Render whole floats without a trailing .0 (40.0 -> "40", 40.5 -> "40.5")"""
    if is_number(value) and isinstance(value, int):
        return str(value)
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def record_value(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from either a mapping or a model/attribute object"""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)
