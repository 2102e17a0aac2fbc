"""In-memory data stores used when MongoDB is disabled."""

import threading
from typing import Any, Dict, Tuple

# Store records keyed by (namespace, key). Each record holds
# 'value', 'version' and 'expires_at' (None for no expiry).
store_entries: Dict[Tuple[str, str], Dict[str, Any]] = {}

# Guards read-modify-write sequences on store_entries.
store_lock = threading.Lock()
