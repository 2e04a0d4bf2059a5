from __future__ import annotations

import inspect
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from collectkit.Exceptions import InvalidKeyException
from collectkit.Support.Types import Arrayable, Key

# Canonical decimal integers only: "05", "-0" and "5.0" stay strings
_INTEGER_KEY = re.compile(r'^(0|-?[1-9][0-9]*)$')

_MISSING = object()


class Arr:
    """Array helper class for ordered key-value data."""

    @staticmethod
    def normalize_key(key: Any) -> Key:
        """Cast a key the way an associative array stores it."""
        if isinstance(key, bool):
            return int(key)
        if isinstance(key, int):
            return int(key)
        if isinstance(key, str):
            if _INTEGER_KEY.match(key):
                return int(key)
            return key
        if isinstance(key, float):
            if not math.isfinite(key):
                raise InvalidKeyException(key)
            return int(key)
        if key is None:
            return ''
        raise InvalidKeyException(key)

    @staticmethod
    def is_valid_key(key: Any) -> bool:
        """Determine whether the given value can be used as a key."""
        try:
            Arr.normalize_key(key)
        except InvalidKeyException:
            return False
        return True

    @staticmethod
    def accessible(value: Any) -> bool:
        """Determine whether the given value is array accessible."""
        return isinstance(value, (Mapping, list, tuple, Arrayable))

    @staticmethod
    def raw(value: Arrayable) -> Dict[Any, Any]:
        """Get the top level items of an Arrayable without converting nested values."""
        items = getattr(value, 'all', None)
        if callable(items):
            return dict(items())
        return dict(value.to_array())

    @staticmethod
    def to_mapping(value: Any) -> Dict[Any, Any]:
        """Convert an array accessible value to an ordered dict."""
        if isinstance(value, Arrayable):
            return Arr.raw(value)
        if isinstance(value, Mapping):
            return dict(value.items())
        return dict(enumerate(value))

    @staticmethod
    def wrap(value: Any) -> List[Any]:
        """Wrap the given value in a list if it's not already a sequence of keys."""
        if value is None:
            return []
        if isinstance(value, (list, tuple, set, frozenset)):
            return list(value)
        return [value]

    @staticmethod
    def field(item: Any, key: Any, default: Any = None) -> Any:
        """Get a field from an item, whatever shape the item has.

        Mappings and Arrayables are read by key, lists and tuples by
        non-negative index, and anything else by public attribute.
        """
        try:
            hash(key)
        except TypeError:
            return default

        if isinstance(item, Arrayable) and not isinstance(item, Mapping):
            getter = getattr(item, 'get', None)
            has = getattr(item, 'has', None)
            if callable(getter) and callable(has):
                return getter(key, default) if Arr.is_valid_key(key) and has(key) else default
            item = Arr.raw(item)

        if isinstance(item, Mapping):
            for candidate in Arr._key_candidates(key):
                if candidate in item:
                    return item[candidate]
            return default

        if isinstance(item, (list, tuple)):
            try:
                index = Arr.normalize_key(key)
            except InvalidKeyException:
                return default
            if isinstance(index, int) and 0 <= index < len(item):
                return item[index]
            return default

        if isinstance(key, str) and not key.startswith('_') and item is not None:
            value = getattr(item, key, _MISSING)
            if value is _MISSING or inspect.ismethod(value):
                return default
            return value

        return default

    @staticmethod
    def exists(item: Any, key: Any) -> bool:
        """Determine if the given field exists on the provided item."""
        return Arr.field(item, key, _MISSING) is not _MISSING

    @staticmethod
    def _key_candidates(key: Any) -> List[Any]:
        candidates = [key]
        if Arr.is_valid_key(key):
            normalized = Arr.normalize_key(key)
            if normalized is not key:
                candidates.append(normalized)
            if isinstance(normalized, int):
                candidates.append(str(normalized))
        return candidates

    @staticmethod
    def is_list(data: Mapping[Any, Any]) -> bool:
        """Determine if the keys are exactly 0..n-1 in order."""
        return all(key == index and type(key) is int for index, key in enumerate(data))

    @staticmethod
    def merge(first: Mapping[Key, Any], second: Optional[Mapping[Key, Any]] = None) -> Dict[Key, Any]:
        """Merge arrays: integer keys are renumbered and appended, string keys overwrite."""
        result: Dict[Key, Any] = {}
        next_index = 0

        for source in (first, second or {}):
            for key, value in source.items():
                if isinstance(key, int):
                    result[next_index] = value
                    next_index += 1
                else:
                    result[key] = value

        return result

    @staticmethod
    def is_scalar(value: Any) -> bool:
        """Determine if a value counts as one element rather than a list of them."""
        return isinstance(value, (str, bytes)) or not isinstance(value, Iterable)

    @staticmethod
    def values_keyed(values: Iterable[Any]) -> Dict[Key, Any]:
        """Build a dict from any array-like argument, keeping mapping keys."""
        if isinstance(values, Arrayable):
            return {Arr.normalize_key(k): v for k, v in Arr.raw(values).items()}
        if isinstance(values, Mapping):
            return {Arr.normalize_key(k): v for k, v in values.items()}
        if Arr.is_scalar(values):
            return {0: values}
        return dict(enumerate(values))

    @staticmethod
    def slice_bounds(count: int, offset: int, length: Optional[int] = None) -> Tuple[int, int]:
        """Resolve an offset/length pair into start and stop positions."""
        if offset < 0:
            start = max(0, count + offset)
        else:
            start = min(offset, count)

        if length is None:
            stop = count
        elif length < 0:
            stop = count + length
        else:
            stop = min(count, start + length)

        return start, max(start, stop)

    @staticmethod
    def next_index(keys: Iterable[Key]) -> int:
        """Get the key an append would use for the given keys."""
        highest = -1
        for key in keys:
            if isinstance(key, int) and key > highest:
                highest = key
        return highest + 1

    @staticmethod
    def values(data: Union[Mapping[Any, Any], Sequence[Any]]) -> List[Any]:
        """Get the values of an array-like argument in order."""
        if isinstance(data, Arrayable):
            return list(Arr.raw(data).values())
        if isinstance(data, Mapping):
            return list(data.values())
        if Arr.is_scalar(data):
            return [data]
        return list(data)
