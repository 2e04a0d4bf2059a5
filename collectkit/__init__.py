from .Exceptions import (
    CollectionException,
    ItemNotFoundException,
    InvalidKeyException,
    SerializationException,
)
from .Support.Collection import Collection, collect
from .Support.Comparison import Comparison, SortFlag
from .Support.Json import JsonOption

__all__ = [
    "Collection",
    "collect",
    "Comparison",
    "SortFlag",
    "JsonOption",
    "CollectionException",
    "ItemNotFoundException",
    "InvalidKeyException",
    "SerializationException",
]

__version__ = "1.0.0"
