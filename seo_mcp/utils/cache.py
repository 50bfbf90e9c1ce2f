"""In-memory TTL cache for tool responses."""

import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ResponseCache:
    """Bounded LRU cache whose entries expire after ``ttl_seconds``.

    Keys are derived from the tool name plus its arguments, so two calls
    with the same arguments in any order share an entry.
    """

    def __init__(self, max_size: int = 100, ttl_seconds: int = 15 * 60):
        self._cache: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._max_size = max_size
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def make_key(tool: str, params: dict[str, Any]) -> str:
        raw = tool + ":" + json.dumps(params, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    def get(self, tool: str, params: dict[str, Any]) -> Optional[Any]:
        key = self.make_key(tool, params)
        entry = self._cache.get(key)
        if entry is None:
            return None
        ts, value = entry
        if time.monotonic() - ts >= self._ttl_seconds:
            del self._cache[key]
            return None
        self._cache.move_to_end(key)
        logger.debug("Cache hit for %s", tool)
        return value

    def set(self, tool: str, params: dict[str, Any], value: Any) -> None:
        key = self.make_key(tool, params)
        self._cache[key] = (time.monotonic(), value)
        self._cache.move_to_end(key)
        while len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
