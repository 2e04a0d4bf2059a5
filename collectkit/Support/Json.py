from __future__ import annotations

import dataclasses
import json
import math
from enum import IntFlag
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from collectkit.Exceptions import SerializationException
from collectkit.Support.Arr import Arr
from collectkit.Support.Types import JsonSerializable, JsonValue


class JsonOption(IntFlag):
    """Encoding flags, numbered like their json_encode() counterparts."""

    NONE = 0
    FORCE_OBJECT = 16
    UNESCAPED_SLASHES = 64
    PRETTY_PRINT = 128
    UNESCAPED_UNICODE = 256
    PRESERVE_ZERO_FRACTION = 1024


DEFAULT_DEPTH = 512


class JsonEncoder:
    """Encode ordered key-value data to JSON text.

    Dicts keyed exactly 0..n-1 become JSON arrays, every other dict becomes
    a JSON object with string keys. Values exposing json_serialize(),
    pydantic models and dataclass instances are converted first; anything
    else the json module cannot represent raises SerializationException.
    """

    def __init__(self, options: Union[int, JsonOption] = 0, depth: int = DEFAULT_DEPTH) -> None:
        self.options = JsonOption(int(options) & sum(JsonOption))
        self.depth = depth

    def has(self, option: JsonOption) -> bool:
        return bool(self.options & option)

    def encode(self, value: Any) -> str:
        """Encode a value to JSON text."""
        prepared = self.prepare(value)
        pretty = self.has(JsonOption.PRETTY_PRINT)

        try:
            text = json.dumps(
                prepared,
                ensure_ascii=not self.has(JsonOption.UNESCAPED_UNICODE),
                indent=4 if pretty else None,
                separators=(',', ': ') if pretty else (',', ':'),
                allow_nan=False,
            )
        except (TypeError, ValueError) as e:
            raise SerializationException(f"Unable to encode value: {e}", value) from e

        if not self.has(JsonOption.UNESCAPED_SLASHES):
            # "/" only ever appears inside string literals
            text = text.replace('/', '\\/')

        return text

    def prepare(self, value: Any, level: int = 0) -> JsonValue:
        """Convert a value into plain json-module data."""
        if isinstance(value, JsonSerializable):
            value = value.json_serialize()
        elif isinstance(value, BaseModel):
            value = value.model_dump(mode='json')
        elif dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)

        if value is None or isinstance(value, (bool, int, str)):
            return value

        if isinstance(value, float):
            if not math.isfinite(value):
                raise SerializationException("Inf and NaN cannot be JSON encoded", value)
            if value.is_integer() and not self.has(JsonOption.PRESERVE_ZERO_FRACTION):
                return int(value)
            return value

        if isinstance(value, (Mapping, list, tuple)):
            if level + 1 > self.depth:
                raise SerializationException("Maximum stack depth exceeded", value)
            return self._prepare_array(Arr.to_mapping(value), level + 1)

        raise SerializationException(
            f"Type {type(value).__name__} is not JSON serializable", value
        )

    def _prepare_array(self, items: Dict[Any, Any], level: int) -> Union[List[JsonValue], Dict[str, JsonValue]]:
        if Arr.is_list(items) and not self.has(JsonOption.FORCE_OBJECT):
            return [self.prepare(item, level) for item in items.values()]

        result: Dict[str, JsonValue] = {}
        for key, item in items.items():
            if not Arr.is_valid_key(key):
                raise SerializationException(
                    f"Key of type {type(key).__name__} is not JSON serializable", key
                )
            result[str(Arr.normalize_key(key))] = self.prepare(item, level)
        return result


def encode(value: Any, options: Union[int, JsonOption] = 0, depth: Optional[int] = None) -> str:
    """Encode a value with the given options."""
    return JsonEncoder(options, DEFAULT_DEPTH if depth is None else depth).encode(value)


def decode(text: Union[str, bytes]) -> Any:
    """Decode JSON text, raising SerializationException on malformed input."""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise SerializationException(f"Unable to decode JSON: {e}", text) from e
