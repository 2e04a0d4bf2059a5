from __future__ import annotations

import copy
import importlib
import json
import logging
import os
import pkgutil
import sys
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Tuple

_bootstrap_logger = logging.getLogger(__name__)

Observer = Callable[[str, Any], None]


class ConfigRepository:
    """Dot-notation settings read from the modules of a config package.

    Each public, non-callable attribute of a ``<package>.<name>`` module is available
    as ``<name>.<attribute>``; nested dicts extend the path. Values are
    copied on load, so ``set()`` never leaks into the modules or into other
    repositories.
    """

    def __init__(self, package: str = 'collectkit.config') -> None:
        self._package = package
        self._config: Dict[str, Any] = {}
        self._cached: Dict[str, Any] = {}
        self._observers: Dict[str, List[Observer]] = {}
        self._load_config()

    def _load_config(self) -> None:
        try:
            package = importlib.import_module(self._package)
        except ImportError:
            _bootstrap_logger.debug("Config package %s not found", self._package)
            return

        for module_info in pkgutil.iter_modules(getattr(package, '__path__', [])):
            if module_info.name.startswith('_'):
                continue
            qualified = f"{self._package}.{module_info.name}"
            try:
                module = importlib.import_module(qualified)
            except Exception:
                _bootstrap_logger.exception("Error loading config %s", qualified)
                continue
            self._config[module_info.name] = {
                name: copy.deepcopy(value)
                for name, value in vars(module).items()
                if not name.startswith('_') and not callable(value) and not isinstance(value, ModuleType)
            }

    def _lookup(self, key: str) -> Tuple[bool, Any]:
        node: Any = self._config
        for segment in key.split('.'):
            if not isinstance(node, dict) or segment not in node:
                return False, None
            node = node[segment]
        return True, node

    def _parent(self, key: str) -> Optional[Dict[str, Any]]:
        """Get the dict holding the last segment of a key, if every section exists."""
        node = self._config
        for segment in key.split('.')[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                return None
            node = child
        return node

    def _make_parent(self, key: str) -> Dict[str, Any]:
        """Get the dict holding the last segment of a key, creating missing sections."""
        node = self._config
        for segment in key.split('.')[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = node[segment] = {}
            node = child
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation."""
        if key in self._cached:
            return self._cached[key]

        found, value = self._lookup(key)
        if not found:
            return default
        self._cached[key] = value
        return value

    def has(self, key: str) -> bool:
        return key in self._cached or self._lookup(key)[0]

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value, creating missing sections."""
        self._make_parent(key)[key.rsplit('.', 1)[-1]] = value
        self._forget_cached(key)

        for pattern, observers in self._observers.items():
            if pattern == key or (pattern.endswith('*') and key.startswith(pattern[:-1])):
                for observer in observers:
                    observer(key, value)

    def forget(self, key: str) -> None:
        parent = self._parent(key)
        if parent is not None:
            parent.pop(key.rsplit('.', 1)[-1], None)
        self._forget_cached(key)

    def all(self) -> Dict[str, Any]:
        return self._config.copy()

    def observe(self, key: str, callback: Observer) -> None:
        """Call back on set() of the key; a trailing * matches by prefix."""
        self._observers.setdefault(key, []).append(callback)

    def flush(self) -> None:
        self._cached.clear()

    def reload(self) -> None:
        """Re-import the config modules, picking up environment changes."""
        prefix = f"{self._package}."
        for name, module in list(sys.modules.items()):
            if name.startswith(prefix):
                importlib.reload(module)
        self._config.clear()
        self._cached.clear()
        self._load_config()

    def _forget_cached(self, key: str) -> None:
        # Parents and children of a changed key are stale too
        for cached in [k for k in self._cached if k.startswith(key) or key.startswith(k)]:
            del self._cached[cached]


def convert_env_value(value: str) -> Any:
    """Convert an environment string to bool, None, number, JSON or str."""
    lowered = value.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    if lowered in ('null', 'none', ''):
        return None

    for number in (int, float):
        try:
            return number(value)
        except ValueError:
            continue

    if value.startswith(('{', '[')):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    return value


def env(key: str, default: Any = None) -> Any:
    """Get environment variable with type conversion."""
    raw = os.getenv(key)
    return default if raw is None else convert_env_value(raw)


config = ConfigRepository()
