"""
Shared type definitions for collections

This module provides the typing vocabulary used across collectkit:
- Generic key/value type variables
- The key and JSON value aliases
- Protocol-based contracts (Arrayable, JsonSerializable)
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Dict,
    List,
    Protocol,
    TypeVar,
    Union,
    runtime_checkable,
)

from typing_extensions import TypeAlias

K = TypeVar("K")
V = TypeVar("V")
U = TypeVar("U")

# Keys as they are stored after normalisation
Key: TypeAlias = Union[int, str]

JsonValue: TypeAlias = Union[
    str,
    int,
    float,
    bool,
    None,
    List['JsonValue'],
    Dict[str, 'JsonValue'],
]

# Three-way comparator used by sort()
Comparator: TypeAlias = Callable[[Any, Any], int]


@runtime_checkable
class Arrayable(Protocol):
    """Protocol for objects that can be converted to arrays."""

    def to_array(self) -> Dict[Any, Any]:
        """Convert to array representation."""
        ...


@runtime_checkable
class JsonSerializable(Protocol):
    """Protocol for objects that hand the encoder a JSON-ready structure."""

    def json_serialize(self) -> Any:
        """Get the data which should be serialized to JSON."""
        ...
