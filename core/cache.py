"""
Conditional request cache.

Keeps the last ``ETag``/``Last-Modified``/data hash seen per command so the
next request can ask the server whether anything changed. Values are kept
in memory and, when a key-value cache collaborator is available, mirrored
there so they survive restarts. Writes are last-write-wins.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

# Request header to send for each change detection mode
CONDITIONAL_HEADERS = {
    "LastModified": "If-Modified-Since",
    "ETag": "If-None-Match",
}

# Response header recorded for each change detection mode
RESPONSE_HEADERS = {
    "LastModified": "Last-Modified",
    "ETag": "ETag",
}


class KeyValueCache(Protocol):
    """Persistent key-value store provided by the host."""

    async def get(self, key: str) -> Any:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...


class ConditionalCache:
    """Cache entries keyed by ``<kind>_<command>``."""

    def __init__(self, backend: Optional[KeyValueCache] = None):
        self.backend = backend
        self._local: dict[str, Any] = {}

    @staticmethod
    def key(kind: str, command: str) -> str:
        return f"{kind}_{command}"

    async def get(self, kind: str, command: str) -> Any:
        key = self.key(kind, command)
        if self.backend is not None:
            value = await self.backend.get(key)
            if value is not None:
                return value
        return self._local.get(key)

    async def set(self, kind: str, command: str, value: Any) -> None:
        key = self.key(kind, command)
        self._local[key] = value
        if self.backend is not None:
            await self.backend.set(key, value)
        logger.debug(f"Stored {key}={value}")
