from __future__ import annotations

from typing import Any, Optional


class CollectionException(Exception):
    """Base exception for collection operations"""
    pass


class ItemNotFoundException(CollectionException, KeyError):
    """Exception raised when a subscript read targets a missing key"""
    
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Undefined collection key `{key!r}`.")
    
    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class InvalidKeyException(CollectionException, TypeError):
    """Exception raised when a value cannot be used as a collection key"""
    
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(
            f"Illegal key type `{type(key).__name__}`. "
            f"Collection keys must be int or str."
        )


class SerializationException(CollectionException, ValueError):
    """Exception raised when a collection cannot be encoded to or decoded from JSON"""
    
    def __init__(self, message: str, value: Optional[Any] = None) -> None:
        self.value = value
        super().__init__(message)
