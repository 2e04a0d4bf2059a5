from .LogManager import (
    JsonFormatter,
    LineFormatter,
    LogChannel,
    LogLevel,
    LogManager,
    get_log_manager,
    logger,
    resolve_level,
)

__all__ = [
    'JsonFormatter',
    'LineFormatter',
    'LogChannel',
    'LogLevel',
    'LogManager',
    'get_log_manager',
    'logger',
    'resolve_level',
]
