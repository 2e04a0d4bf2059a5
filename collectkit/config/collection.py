import os
from typing import Any, Dict

# JSON encoding defaults used by Collection.to_json()
json: Dict[str, Any] = {
    'depth': int(os.getenv('COLLECTION_JSON_DEPTH', '512')),
    'options': int(os.getenv('COLLECTION_JSON_OPTIONS', '0')),
}

# Log channel the Collection reports through
log_channel = os.getenv('COLLECTION_LOG_CHANNEL', 'collection')
