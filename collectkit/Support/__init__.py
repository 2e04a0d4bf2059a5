from .Arr import Arr
from .Collection import Collection, collect
from .Comparison import Comparison, SortFlag
from .Config import config, ConfigRepository, env
from .Json import JsonEncoder, JsonOption

__all__ = [
    "Arr",
    "Collection",
    "collect",
    "Comparison",
    "SortFlag",
    "config",
    "ConfigRepository",
    "env",
    "JsonEncoder",
    "JsonOption",
]
