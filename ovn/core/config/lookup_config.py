# ovn/core/config/lookup_config.py
import os
from typing import Dict, Any

class LookupConfig:
    """
    Parámetros del índice de consultas (paginación y concurrencia).
    """
    def __init__(self):
        self._default_limit = int(os.getenv("OVN_DEFAULT_LIMIT", 50))
        self._max_limit = int(os.getenv("OVN_MAX_LIMIT", 1000))
        self._lock_stripes = int(os.getenv("OVN_LOCK_STRIPES", 64))

    @property
    def default_limit(self) -> int: return self._default_limit
    @property
    def max_limit(self) -> int: return self._max_limit
    @property
    def lock_stripes(self) -> int: return self._lock_stripes

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        if not data: return

        if "default_limit" in data:
            self._default_limit = int(data["default_limit"])
        if "max_limit" in data:
            self._max_limit = int(data["max_limit"])
        if "lock_stripes" in data:
            self._lock_stripes = max(1, int(data["lock_stripes"]))
