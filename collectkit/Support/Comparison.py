"""
Comparison strategies for collection values

Two named strategies replace implicit coercing equality:
- LOOSE: value equivalence, numbers and numeric strings compare as numbers,
  None and booleans compare by truthiness, arrays compare entry by entry
- STRICT: identical type and value, arrays compare in order, other objects
  by identity

The module also holds the three-way loose ordering used by sort(), the
key sort flags used by sort_keys() and the operator table used by where().
"""

from __future__ import annotations

import locale
import math
import re
from enum import Enum, IntEnum
from functools import cmp_to_key
from typing import Any, Callable, Dict, Mapping, Union

from collectkit.Support.Arr import Arr
from collectkit.Support.Types import Arrayable

_NUMERIC = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')
_LEADING_NUMERIC = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')


def is_number(value: Any) -> bool:
    """Determine if the value is an int or float (booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_numeric(value: Any) -> bool:
    """Determine if the value is a number or a numeric string."""
    if is_number(value):
        return True
    return isinstance(value, str) and _NUMERIC.match(value) is not None


def to_number(value: Any) -> Union[int, float]:
    """Convert a value to a number, falling back to the leading numeric part or 0."""
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        match = _LEADING_NUMERIC.match(value)
        if match is None:
            return 0
        text = match.group(0).strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    return 0


def to_string(value: Any) -> str:
    """Coerce a scalar to its string form; containers cannot be coerced."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return '1' if value else ''
    if isinstance(value, float):
        if math.isnan(value):
            return 'NAN'
        if math.isinf(value):
            return 'INF' if value > 0 else '-INF'
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        raise TypeError(f"Cannot convert {type(value).__name__} to string")
    return str(value)


def _is_array(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple, Arrayable))


def _sign(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def loose_equals(left: Any, right: Any) -> bool:
    """Compare two values for equivalence, allowing type coercion."""
    if left is None and right is None:
        return True

    if isinstance(left, bool) or isinstance(right, bool):
        return bool(left) == bool(right)

    if left is None or right is None:
        other = right if left is None else left
        if isinstance(other, str):
            return other == ''
        return not bool(other)

    if is_numeric(left) and is_numeric(right):
        return to_number(left) == to_number(right)

    if is_number(left) and isinstance(right, str):
        return to_string(left) == right
    if isinstance(left, str) and is_number(right):
        return left == to_string(right)

    if _is_array(left) or _is_array(right):
        if not (_is_array(left) and _is_array(right)):
            return False
        first, second = Arr.to_mapping(left), Arr.to_mapping(right)
        if len(first) != len(second):
            return False
        for key, value in first.items():
            if key not in second or not loose_equals(value, second[key]):
                return False
        return True

    return bool(left == right)


def strict_equals(left: Any, right: Any) -> bool:
    """Compare two values requiring identical type and value."""
    if type(left) is not type(right):
        return False

    if isinstance(left, dict):
        if list(left.keys()) != list(right.keys()):
            return False
        return all(strict_equals(value, right[key]) for key, value in left.items())

    if isinstance(left, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(strict_equals(a, b) for a, b in zip(left, right))

    if left is None or isinstance(left, (bool, int, float, str, bytes)):
        return bool(left == right)

    return left is right


def loose_compare(left: Any, right: Any) -> int:
    """Three-way comparison under loose rules: -1, 0 or 1."""
    if left is None and right is None:
        return 0

    if isinstance(left, bool) or isinstance(right, bool):
        return _sign(bool(left), bool(right))

    if left is None or right is None:
        if isinstance(left, str) or isinstance(right, str):
            return _sign(to_string(left), to_string(right))
        return _sign(bool(left), bool(right))

    if is_numeric(left) and is_numeric(right):
        return _sign(to_number(left), to_number(right))

    if isinstance(left, str) and isinstance(right, str):
        return _sign(left, right)

    if is_number(left) and isinstance(right, str):
        return _sign(to_string(left), right)
    if isinstance(left, str) and is_number(right):
        return _sign(left, to_string(right))

    if _is_array(left) or _is_array(right):
        if not (_is_array(left) and _is_array(right)):
            # arrays are always greater
            return 1 if _is_array(left) else -1
        first, second = Arr.to_mapping(left), Arr.to_mapping(right)
        if len(first) != len(second):
            return _sign(len(first), len(second))
        for key, value in first.items():
            if key not in second:
                return 1
            result = loose_compare(value, second[key])
            if result != 0:
                return result
        return 0

    try:
        return _sign(left, right)
    except TypeError:
        return _sign(
            (type(left).__name__, repr(left)),
            (type(right).__name__, repr(right)),
        )


class Comparison(Enum):
    """Named equality strategy chosen per call."""

    LOOSE = 'loose'
    STRICT = 'strict'

    @classmethod
    def resolve(cls, strict: Union[bool, 'Comparison']) -> 'Comparison':
        """Accept either a strategy or a plain strict flag."""
        if isinstance(strict, Comparison):
            return strict
        return cls.STRICT if strict else cls.LOOSE

    def equals(self, left: Any, right: Any) -> bool:
        """Compare two values with this strategy."""
        if self is Comparison.STRICT:
            return strict_equals(left, right)
        return loose_equals(left, right)


class SortFlag(IntEnum):
    """How sort_keys() compares keys."""

    REGULAR = 0
    NUMERIC = 1
    STRING = 2
    LOCALE_STRING = 5

    def sort_key(self) -> Callable[[Any], Any]:
        """Get a key function implementing this flag."""
        if self is SortFlag.NUMERIC:
            return to_number
        if self is SortFlag.STRING:
            return to_string
        if self is SortFlag.LOCALE_STRING:
            return lambda value: locale.strxfrm(to_string(value))
        return cmp_to_key(loose_compare)


def _loose_ne(left: Any, right: Any) -> bool:
    return not loose_equals(left, right)


def _strict_ne(left: Any, right: Any) -> bool:
    return not strict_equals(left, right)


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    '=': loose_equals,
    '==': loose_equals,
    '!=': _loose_ne,
    '<>': _loose_ne,
    '<': lambda left, right: loose_compare(left, right) < 0,
    '>': lambda left, right: loose_compare(left, right) > 0,
    '<=': lambda left, right: loose_compare(left, right) <= 0,
    '>=': lambda left, right: loose_compare(left, right) >= 0,
    '===': strict_equals,
    '!==': _strict_ne,
}

DEFAULT_OPERATOR = '='
