from __future__ import annotations

import copy
import json
import logging
import sys
from datetime import datetime
from enum import Enum
from functools import partialmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union


class LogLevel(Enum):
    """Log levels enum."""
    DEBUG = 'debug'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'
    CRITICAL = 'critical'


LevelLike = Union[str, int, LogLevel]

# Builds the handler for a configured channel
DriverFactory = Callable[[str, Dict[str, Any]], logging.Handler]


def resolve_level(level: LevelLike) -> int:
    """Turn a level name, LogLevel or number into a logging level number."""
    if isinstance(level, LogLevel):
        level = level.value
    if isinstance(level, str):
        number = logging.getLevelName(level.upper())
        if not isinstance(number, int):
            raise ValueError(f"Unknown log level '{level}'")
        return number
    return level


class LogChannel:
    """Named channel writing to the ``collectkit.<name>`` logger.

    Every record carries a ``context`` dict built from the channel's bound
    context plus the context passed with the call.
    """

    def __init__(
        self,
        name: str,
        handlers: List[logging.Handler],
        level: LevelLike = logging.DEBUG,
        propagate: bool = False,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.name = name
        self.context: Dict[str, Any] = dict(context or {})
        self.logger = logging.getLogger(f"collectkit.{name}")
        self.logger.setLevel(resolve_level(level))
        self.logger.propagate = propagate

        for replaced in self.logger.handlers:
            if replaced not in handlers:
                replaced.close()
        self.logger.handlers[:] = handlers

    def with_context(self, **context: Any) -> 'LogChannel':
        """Get a view of this channel that adds the given context to every record."""
        bound = copy.copy(self)
        bound.context = {**self.context, **context}
        return bound

    def is_enabled_for(self, level: LevelLike) -> bool:
        return self.logger.isEnabledFor(resolve_level(level))

    def log(self, level: LevelLike, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        """Write a message at the given level."""
        merged = {**self.context, **(context or {})}
        self.logger.log(resolve_level(level), message, extra={'context': merged})

    debug = partialmethod(log, logging.DEBUG)
    info = partialmethod(log, logging.INFO)
    warning = partialmethod(log, logging.WARNING)
    error = partialmethod(log, logging.ERROR)
    critical = partialmethod(log, logging.CRITICAL)

    def __repr__(self) -> str:
        return f"LogChannel({self.name!r}, level={logging.getLevelName(self.logger.level)})"


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, 'context', None) or {}


class LineFormatter(logging.Formatter):
    """One line per record: ``[date] channel.LEVEL: message {context}``."""

    def __init__(self, date_format: str = '%Y-%m-%d %H:%M:%S') -> None:
        super().__init__()
        self.date_format = date_format

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime(self.date_format)
        line = f"[{stamp}] {record.name}.{record.levelname}: {record.getMessage()}"

        context = _record_context(record)
        if context:
            line = f"{line} {json.dumps(context, default=str)}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'channel': record.name,
            'level': record.levelname,
            'message': record.getMessage(),
            'context': _record_context(record),
        }
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


FORMATTERS: Dict[str, Callable[[], logging.Formatter]] = {
    'line': LineFormatter,
    'json': JsonFormatter,
}


class LogManager:
    """Resolve configured channels by name and cache them.

    The configuration mirrors ``collectkit/config/logging.py``: a ``default`` channel
    name and a ``channels`` table whose entries pick a ``driver``. Names
    missing from the table get a silent channel that still propagates, so
    host applications see collection records through their own logging.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self._config: Dict[str, Any] = copy.deepcopy(config or {})
        self._channels: Dict[str, LogChannel] = {}
        self._default_channel: str = self._config.get('default', 'collection')
        self._drivers: Dict[str, DriverFactory] = {
            'single': self._single_handler,
            'stderr': self._stderr_handler,
            'null': self._null_handler,
        }

    def channel(self, name: Optional[str] = None) -> LogChannel:
        """Get a log channel, building it on first use."""
        name = name or self._default_channel
        if name not in self._channels:
            self._channels[name] = self._resolve(name)
        return self._channels[name]

    def stack(self, channels: List[str], name: Optional[str] = None) -> LogChannel:
        """Build a channel writing through each of the given channels."""
        name = name or f"stack_{'_'.join(channels)}"
        self._config.setdefault('channels', {})[name] = {'driver': 'stack', 'channels': channels}
        self._channels.pop(name, None)
        return self.channel(name)

    def extend(self, driver: str, factory: DriverFactory) -> None:
        """Register a handler factory for a custom driver name."""
        self._drivers[driver] = factory

    def get_default_driver(self) -> str:
        return self._default_channel

    def set_default_driver(self, name: str) -> None:
        self._default_channel = name

    def get_channels(self) -> Dict[str, LogChannel]:
        return self._channels

    def forget_channel(self, name: str) -> None:
        self._channels.pop(name, None)

    def log(self, level: LevelLike, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        """Write a message to the default channel."""
        self.channel().log(level, message, context)

    def _resolve(self, name: str) -> LogChannel:
        config = self._config.get('channels', {}).get(name)
        if config is None:
            config = {'driver': 'null', 'propagate': True}

        driver = config.get('driver', 'null')
        if driver == 'stack':
            handlers = [
                handler
                for member in config.get('channels', [])
                for handler in self.channel(member).logger.handlers
            ]
        elif driver in self._drivers:
            handlers = [self._drivers[driver](name, config)]
        else:
            raise ValueError(f"Log driver [{driver}] for channel [{name}] is not supported")

        return LogChannel(
            name,
            handlers,
            config.get('level', logging.DEBUG),
            propagate=bool(config.get('propagate', False)),
            context=config.get('context'),
        )

    def _single_handler(self, name: str, config: Dict[str, Any]) -> logging.Handler:
        path = Path(config.get('path', f'storage/logs/{name}.log'))
        path.parent.mkdir(parents=True, exist_ok=True)
        return self._formatted(logging.FileHandler(path), config)

    def _stderr_handler(self, name: str, config: Dict[str, Any]) -> logging.Handler:
        return self._formatted(logging.StreamHandler(sys.stderr), config)

    def _null_handler(self, name: str, config: Dict[str, Any]) -> logging.Handler:
        return logging.NullHandler()

    def _formatted(self, handler: logging.Handler, config: Dict[str, Any]) -> logging.Handler:
        formatter = FORMATTERS.get(config.get('formatter', 'line'), LineFormatter)
        handler.setFormatter(formatter())
        return handler


# Shared manager, configured from the logging config on first use
_manager: Optional[LogManager] = None


def get_log_manager() -> LogManager:
    global _manager
    if _manager is None:
        from collectkit.Support.Config import config
        _manager = LogManager(config.get('logging', {}))
        config.observe('logging.*', _discard_manager)
    return _manager


def _discard_manager(key: str, value: Any) -> None:
    """Drop the shared manager so the next call rebuilds it from the changed config."""
    global _manager
    _manager = None


def logger(channel: Optional[str] = None) -> LogChannel:
    """Get a channel from the shared log manager."""
    return get_log_manager().channel(channel)
