from __future__ import annotations

import inspect
import random
from functools import cmp_to_key
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from collectkit.Exceptions import ItemNotFoundException, SerializationException
from collectkit.Log.LogManager import LogChannel, logger
from collectkit.Support import Json
from collectkit.Support.Arr import Arr
from collectkit.Support.Comparison import (
    DEFAULT_OPERATOR,
    OPERATORS,
    Comparison,
    SortFlag,
    loose_compare,
    loose_equals,
    to_string,
)
from collectkit.Support.Config import config
from collectkit.Support.Types import Arrayable, Comparator, K, Key, U, V

_MISSING = object()


def _accepts_key(callback: Callable[..., Any]) -> bool:
    """Determine whether a callback takes (value, key) rather than (value)."""
    if inspect.isclass(callback) or inspect.isbuiltin(callback):
        return False

    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return False

    positional = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 2


def _invoker(callback: Callable[..., U]) -> Callable[[Any, Key], U]:
    if _accepts_key(callback):
        return callback
    return lambda value, key: callback(value)


class Collection(Generic[K, V]):
    """Ordered key-value collection with a fluent, chainable API.

    Operations documented as returning the collection mutate the receiver;
    every other transformation builds a new instance from a fresh dict.
    """

    def __init__(self, items: Any = None) -> None:
        self._items: Dict[Key, V] = {}
        self._next_index = 0

        if items is None:
            return

        if isinstance(items, Collection):
            self._items = items.all()
            self._next_index = items._next_index
        elif isinstance(items, Mapping):
            for key, value in items.items():
                self._items[Arr.normalize_key(key)] = value
            self._next_index = Arr.next_index(self._items)
        elif Arr.is_scalar(items):
            self._items = {0: items}
            self._next_index = 1
        else:
            self._items = dict(enumerate(items))
            self._next_index = len(self._items)

    @classmethod
    def make(cls, items: Any = None) -> 'Collection[Any, Any]':
        """Create a new collection instance."""
        return cls(items)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> 'Collection[Any, Any]':
        """Create a collection from JSON text."""
        return cls(Json.decode(text))

    # Core methods
    def all(self) -> Dict[Key, V]:
        """Get all items as an ordered dict."""
        return dict(self._items)

    def count(self) -> int:
        """Get the number of items."""
        return len(self._items)

    def is_empty(self) -> bool:
        """Check if the collection is empty."""
        return len(self._items) == 0

    def is_not_empty(self) -> bool:
        """Check if the collection is not empty."""
        return not self.is_empty()

    def keys(self) -> List[Key]:
        """Get the keys in order."""
        return list(self._items.keys())

    def values(self) -> List[V]:
        """Get the values in order, without their keys."""
        return list(self._items.values())

    def items(self) -> List[Tuple[Key, V]]:
        """Get the (key, value) pairs in order."""
        return list(self._items.items())

    # Access
    def get(self, key: Any, default: Any = None) -> Any:
        """Get an item by key, or the default when it is missing."""
        if self._exists(key):
            return self._items[Arr.normalize_key(key)]
        return default

    def has(self, *keys: Any) -> bool:
        """Determine if every given key exists."""
        if len(keys) == 1 and isinstance(keys[0], (list, tuple, set, frozenset)):
            keys = tuple(keys[0])
        return all(self._exists(key) for key in keys)

    def first(self) -> Optional[V]:
        """Get the first value, or None when empty."""
        return next(iter(self._items.values()), None)

    def last(self) -> Optional[V]:
        """Get the last value, or None when empty."""
        return next(reversed(self._items.values()), None)

    def contains(self, value: Any, strict: Union[bool, Comparison] = True) -> bool:
        """Determine if a value exists in the collection."""
        comparison = Comparison.resolve(strict)
        return any(comparison.equals(item, value) for item in self._items.values())

    def search(self, value: Any, strict: Union[bool, Comparison] = False) -> Optional[Key]:
        """Get the key of the first matching value, or None when not found."""
        comparison = Comparison.resolve(strict)
        for key, item in self._items.items():
            if comparison.equals(item, value):
                return key
        return None

    # Adding/Removing items
    def put(self, key: Any, value: V) -> 'Collection[K, V]':
        """Put an item by key; a None key appends."""
        if key is None:
            self.append(value)
        else:
            self._set(Arr.normalize_key(key), value)
        return self

    def append(self, value: V) -> Key:
        """Append a value under the next integer key and return that key."""
        key = self._next_index
        self._items[key] = value
        self._next_index += 1
        return key

    def push(self, value: V) -> 'Collection[K, V]':
        """Push an item onto the end of the collection."""
        self.append(value)
        return self

    def prepend(self, value: V) -> 'Collection[K, V]':
        """Push an item onto the beginning of the collection, renumbering integer keys."""
        self._replace(Arr.merge({0: value}, self._items))
        return self

    def pull(self, key: Any, default: Any = None) -> Any:
        """Get and remove an item from the collection."""
        value = self.get(key, default)
        self.forget(key)
        return value

    def forget(self, keys: Any) -> 'Collection[K, V]':
        """Remove one or more items by key."""
        for key in Arr.wrap(keys):
            if self._exists(key):
                del self._items[Arr.normalize_key(key)]
        return self

    def pop(self) -> Optional[V]:
        """Get and remove the last item."""
        if not self._items:
            return None

        key, value = self._items.popitem()
        if isinstance(key, int) and key == self._next_index - 1:
            self._next_index -= 1
        return value

    def shift(self) -> Optional[V]:
        """Get and remove the first item, renumbering integer keys."""
        if not self._items:
            return None

        value = self._items.pop(next(iter(self._items)))
        self._replace(Arr.merge(self._items))
        return value

    def insert_before(self, key: Any, values: Any) -> 'Collection[K, V]':
        """Insert entries before a key; prepend the values when the key is missing."""
        if not self._exists(key):
            return self.prepend(values)

        return self._splice(self._position(key), values)

    def insert_after(self, key: Any, values: Any) -> 'Collection[K, V]':
        """Insert entries after a key; push the values when the key is missing."""
        if not self._exists(key):
            return self.push(values)

        return self._splice(self._position(key) + 1, values)

    # Filtering and searching
    def filter(self, callback: Optional[Callable[..., Any]] = None) -> 'Collection[K, V]':
        """Filter items using a callback, or drop falsy values."""
        if callback is None:
            return self.__class__({key: value for key, value in self._items.items() if value})

        call = _invoker(callback)
        return self.__class__({
            key: value for key, value in self._items.items() if call(value, key)
        })

    def where(self, key: Any, operator: Any, value: Any = _MISSING) -> 'Collection[K, V]':
        """Filter items by comparing a field against a value."""
        if value is _MISSING:
            value = operator
            operator = DEFAULT_OPERATOR

        compare = OPERATORS.get(operator) if isinstance(operator, str) else None
        if compare is None:
            self._logger().warning(
                f"Unknown where() operator, falling back to '{DEFAULT_OPERATOR}'",
                {'operator': repr(operator), 'key': repr(key)},
            )
            compare = OPERATORS[DEFAULT_OPERATOR]

        return self.filter(lambda item: compare(Arr.field(item, key), value))

    def only(self, keys: Any) -> 'Collection[K, V]':
        """Get the items with the specified keys."""
        wanted = self._key_set(keys)
        return self.__class__({key: value for key, value in self._items.items() if key in wanted})

    def except_keys(self, keys: Any) -> 'Collection[K, V]':
        """Get all items except for those with the specified keys."""
        unwanted = self._key_set(keys)
        return self.__class__({key: value for key, value in self._items.items() if key not in unwanted})

    def diff(self, values: Any) -> 'Collection[K, V]':
        """Get the items whose values are not present in the given values."""
        others = Arr.values(values)
        return self.filter(lambda item: not any(loose_equals(item, other) for other in others))

    def intersect(self, values: Any) -> 'Collection[K, V]':
        """Get the items whose values are present in the given values."""
        others = Arr.values(values)
        return self.filter(lambda item: any(loose_equals(item, other) for other in others))

    def intersect_by_keys(self, keys: Any) -> 'Collection[K, V]':
        """Get the items whose keys are present in the given keys."""
        if isinstance(keys, (Mapping, Arrayable)):
            keys = list(Arr.to_mapping(keys).keys())
        elif not Arr.is_scalar(keys):
            keys = list(keys)
        return self.only(keys)

    def unique(self) -> 'Collection[K, V]':
        """Keep the first occurrence of each distinct value."""
        seen: List[V] = []
        result: Dict[Key, V] = {}
        for key, value in self._items.items():
            if not any(loose_equals(value, other) for other in seen):
                seen.append(value)
                result[key] = value
        return self.__class__(result)

    # Transforming
    def map(self, callback: Callable[..., U]) -> 'Collection[K, U]':
        """Transform each value, keeping its key."""
        call = _invoker(callback)
        return self.__class__({key: call(value, key) for key, value in self._items.items()})

    def transform(self, callback: Callable[..., V]) -> 'Collection[K, V]':
        """Transform each value in place."""
        self._items = self.map(callback).all()
        return self

    def merge(self, values: Any) -> 'Collection[Any, Any]':
        """Merge the given items; integer keys are appended, string keys overwrite."""
        return self.__class__(Arr.merge(self._items, Arr.values_keyed(values)))

    def concat(self, values: Any) -> 'Collection[Any, Any]':
        """Push every given value onto a copy of the collection."""
        collection = self.__class__(self)
        for value in Arr.values(values):
            collection.push(value)
        return collection

    def flip(self) -> 'Collection[Any, Key]':
        """Swap keys with their values."""
        result: Dict[Key, Key] = {}
        for key, value in self._items.items():
            if not Arr.is_valid_key(value):
                self._logger().warning(
                    "Can only flip string and integer values, entry skipped",
                    {'key': key, 'type': type(value).__name__},
                )
                continue
            result[Arr.normalize_key(value)] = key
        return self.__class__(result)

    def group_by(self, group_by: Union[str, int, Callable[..., Any]]) -> 'Collection[Key, List[V]]':
        """Group items into lists keyed by a field or callback result."""
        results: Dict[Key, List[V]] = {}
        for group_key, item in self._bucket_keys(group_by):
            results.setdefault(group_key, []).append(item)
        return self.__class__(results)

    def index_by(self, index_by: Union[str, int, Callable[..., Any]]) -> 'Collection[Key, V]':
        """Key items by a field or callback result; the last item wins."""
        results: Dict[Key, V] = {}
        for index_key, item in self._bucket_keys(index_by):
            results[index_key] = item
        return self.__class__(results)

    def pluck(self, value: Any, key: Any = None) -> 'Collection[Any, Any]':
        """Get the values of a field, optionally keyed by another field."""
        results: Collection[Any, Any] = self.__class__()

        for item in self._items.values():
            if value is None:
                plucked = item
            elif Arr.exists(item, value):
                plucked = Arr.field(item, value)
            else:
                continue

            index = Arr.field(item, key, _MISSING) if key is not None else _MISSING
            if index is not _MISSING and Arr.is_valid_key(index):
                results.put(index, plucked)
            else:
                results.push(plucked)

        return results

    # Sorting
    def sort(self, callback: Optional[Comparator] = None) -> 'Collection[K, V]':
        """Sort values, keeping their keys."""
        compare = callback or loose_compare
        ordered = sorted(self._items.items(), key=cmp_to_key(lambda a, b: compare(a[1], b[1])))
        return self.__class__(dict(ordered))

    def sort_keys(self, flags: Union[int, SortFlag] = SortFlag.REGULAR, descending: bool = False) -> 'Collection[K, V]':
        """Sort the collection by key."""
        sort_key = SortFlag(flags).sort_key()
        ordered = sorted(self._items.items(), key=lambda pair: sort_key(pair[0]), reverse=descending)
        return self.__class__(dict(ordered))

    def reverse(self) -> 'Collection[K, V]':
        """Reverse items order, keeping their keys."""
        return self.__class__(dict(reversed(list(self._items.items()))))

    def shuffle(self, rng: Optional[random.Random] = None) -> 'Collection[int, V]':
        """Get the values in random order, keyed from zero."""
        values = self.values()
        (rng or random).shuffle(values)
        return self.__class__(values)

    def random(self, count: int = 1, rng: Optional[random.Random] = None) -> 'Collection[K, V]':
        """Get up to count items chosen at random, keeping their keys and order."""
        size = min(count, len(self._items))
        if size <= 0:
            return self.__class__()

        chosen = set((rng or random).sample(self.keys(), size))
        self._logger().debug("Selected random items", {'count': size, 'keys': sorted(chosen, key=str)})
        return self.__class__({key: value for key, value in self._items.items() if key in chosen})

    # Slicing and taking
    def slice(self, offset: int, length: Optional[int] = None) -> 'Collection[K, V]':
        """Slice the collection, keeping keys."""
        start, stop = Arr.slice_bounds(len(self._items), offset, length)
        return self.__class__(dict(list(self._items.items())[start:stop]))

    def take(self, limit: int) -> 'Collection[K, V]':
        """Take the first or, for a negative limit, the last items."""
        if limit < 0:
            return self.slice(limit, abs(limit))
        return self.slice(0, limit)

    def for_page(self, page: int, per_page: int) -> 'Collection[K, V]':
        """Get one 1-indexed page of items."""
        offset = max(0, (page - 1) * per_page)
        return self.slice(offset, per_page)

    # Joining
    def implode(self, glue: str = '') -> str:
        """Join the values into a string."""
        return glue.join(to_string(value) for value in self._items.values())

    # Utility methods
    def each(self, callback: Callable[..., Any]) -> 'Collection[K, V]':
        """Execute callback for each item."""
        call = _invoker(callback)
        for key, value in list(self._items.items()):
            call(value, key)
        return self

    def tap(self, callback: Callable[['Collection[K, V]'], Any]) -> 'Collection[K, V]':
        """Pass a copy of the collection to the callback and return the collection."""
        callback(self.__class__(self))
        return self

    def when(self, value: Any, callback: Callable[['Collection[K, V]', Any], Any], fallback: Optional[Callable[['Collection[K, V]', Any], Any]] = None) -> Any:
        """Apply the callback if the value is truthy, otherwise the fallback if given."""
        if value:
            return callback(self, value)
        if fallback is not None:
            return fallback(self, value)
        return self

    # Serialization
    def to_array(self) -> Dict[Key, Any]:
        """Get the items as a dict, converting nested arrayables."""
        return {
            key: value.to_array() if isinstance(value, Arrayable) else value
            for key, value in self._items.items()
        }

    def json_serialize(self) -> Dict[Key, V]:
        """Get the data which should be serialized to JSON."""
        return self.all()

    def to_json(self, options: Optional[Union[int, Json.JsonOption]] = None, depth: Optional[int] = None) -> str:
        """Get the collection as JSON."""
        if options is None:
            options = config.get('collection.json.options', 0)
        if depth is None:
            depth = config.get('collection.json.depth', Json.DEFAULT_DEPTH)

        try:
            return Json.JsonEncoder(options, depth).encode(self)
        except SerializationException as e:
            self._logger().error("Unable to encode collection", {'reason': str(e), 'count': self.count()})
            raise

    def to_string(self) -> str:
        """Convert the collection to its string representation."""
        return self.to_json()

    # Helper methods
    def _exists(self, key: Any) -> bool:
        return Arr.is_valid_key(key) and Arr.normalize_key(key) in self._items

    def _set(self, key: Key, value: V) -> None:
        self._items[key] = value
        if isinstance(key, int) and key >= self._next_index:
            self._next_index = key + 1

    def _replace(self, items: Dict[Key, V]) -> None:
        self._items = items
        self._next_index = Arr.next_index(items)

    def _position(self, key: Any) -> int:
        return self.keys().index(Arr.normalize_key(key))

    def _splice(self, position: int, values: Any) -> 'Collection[K, V]':
        pairs = list(self._items.items())
        before, after = dict(pairs[:position]), dict(pairs[position:])
        self._replace(Arr.merge(Arr.merge(before, Arr.values_keyed(values)), after))
        return self

    def _key_set(self, keys: Any) -> set:
        return {Arr.normalize_key(key) for key in Arr.wrap(keys) if Arr.is_valid_key(key)}

    def _bucket_keys(self, field: Any) -> Iterator[Tuple[Key, V]]:
        """Yield (bucket key, item) pairs, skipping items without a usable key."""
        call = _invoker(field) if callable(field) else None
        for key, item in self._items.items():
            if call is not None:
                bucket = call(item, key)
            elif Arr.exists(item, field):
                bucket = Arr.field(item, field)
            else:
                continue

            if Arr.is_valid_key(bucket):
                yield Arr.normalize_key(bucket), item

    def _logger(self) -> LogChannel:
        return logger(config.get('collection.log_channel', 'collection'))

    # Magic methods
    def __iter__(self) -> Iterator[Tuple[Key, V]]:
        """Iterate over (key, value) pairs."""
        return iter(list(self._items.items()))

    def __len__(self) -> int:
        """Get length."""
        return len(self._items)

    def __bool__(self) -> bool:
        """Check if collection is not empty."""
        return not self.is_empty()

    def __contains__(self, key: Any) -> bool:
        """Check if a key exists."""
        return self._exists(key)

    def __getitem__(self, key: Any) -> V:
        """Get item by key, failing when it is missing."""
        if not self._exists(key):
            raise ItemNotFoundException(key)
        return self._items[Arr.normalize_key(key)]

    def __setitem__(self, key: Any, value: V) -> None:
        """Set item by key; a None key appends."""
        self.put(key, value)

    def __delitem__(self, key: Any) -> None:
        """Remove item by key."""
        self.forget(key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Collection):
            return NotImplemented
        return list(self._items.items()) == list(other._items.items())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """String representation."""
        return f"{self.__class__.__name__}({self._items!r})"

    def __str__(self) -> str:
        """JSON representation."""
        return self.to_string()


# Helper function
def collect(items: Any = None) -> Collection[Any, Any]:
    """Create a collection instance."""
    return Collection.make(items)
