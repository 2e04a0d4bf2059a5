import os
from typing import Any, Dict

# Minimum level for every channel below
level = os.getenv('LOG_LEVEL', 'debug')

# Channel used by logger() when no name is given
default = os.getenv('LOG_CHANNEL', 'collection')

channels: Dict[str, Dict[str, Any]] = {
    # Hands records to the host application's logging tree
    'collection': {
        'driver': 'null',
        'level': level,
        'propagate': True,
    },
    'stderr': {
        'driver': 'stderr',
        'level': level,
        'formatter': 'line',
    },
    'file': {
        'driver': 'single',
        'path': os.getenv('LOG_PATH', 'storage/logs/collectkit.log'),
        'level': level,
    },
    'json': {
        'driver': 'single',
        'path': os.getenv('LOG_JSON_PATH', 'storage/logs/collectkit.json.log'),
        'level': level,
        'formatter': 'json',
    },
    'stack': {
        'driver': 'stack',
        'channels': ['stderr', 'file'],
        'level': level,
    },
}
