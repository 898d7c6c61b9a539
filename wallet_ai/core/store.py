"""
Key-value store abstraction. Redis OR process-local memory. Controlled by FF_USE_REDIS flag.

Sessions, the credential restore map and the purchase ledger all sit on top of
this interface, so moving them to a shared store is a flag flip.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from .config import get_settings
from .flags import get_flags

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store a string value. `ttl` in seconds; None keeps it forever."""
        ...

    @abstractmethod
    async def has(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    # ── Set-valued keys ──────────────────────────────────────────────

    @abstractmethod
    async def add_member(self, key: str, member: str) -> None:
        """Add to the set at `key`. Adding an existing member is a no-op."""
        ...

    @abstractmethod
    async def is_member(self, key: str, member: str) -> bool:
        ...

    @abstractmethod
    async def members(self, key: str) -> set[str]:
        ...

    async def close(self) -> None:
        return None


class MemoryStore(KeyValueStore):
    """
    Process-local store. Mutations are single synchronous dict operations, so
    no lock is needed on one event loop. Not shared between processes.
    """

    def __init__(self):
        self._values: dict[str, tuple[str, Optional[float]]] = {}
        self._sets: dict[str, set[str]] = {}

    def _live(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            self._values.pop(key, None)
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._values[key] = (value, expires_at)

    async def has(self, key: str) -> bool:
        return self._live(key) is not None or bool(self._sets.get(key))

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._sets.pop(key, None)

    async def add_member(self, key: str, member: str) -> None:
        self._sets.setdefault(key, set()).add(member)

    async def is_member(self, key: str, member: str) -> bool:
        return member in self._sets.get(key, ())

    async def members(self, key: str) -> set[str]:
        return set(self._sets.get(key, ()))


class RedisStore(KeyValueStore):
    def __init__(self, client=None):
        self._client = client

    async def _get_client(self):
        if self._client is None:
            import redis.asyncio as aioredis

            settings = get_settings()
            self._client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
        return self._client

    async def get(self, key: str) -> Optional[str]:
        client = await self._get_client()
        return await client.get(key)

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        client = await self._get_client()
        await client.set(key, value, ex=ttl)

    async def has(self, key: str) -> bool:
        client = await self._get_client()
        return bool(await client.exists(key))

    async def delete(self, key: str) -> None:
        client = await self._get_client()
        await client.delete(key)

    async def add_member(self, key: str, member: str) -> None:
        client = await self._get_client()
        await client.sadd(key, member)

    async def is_member(self, key: str, member: str) -> bool:
        client = await self._get_client()
        return bool(await client.sismember(key, member))

    async def members(self, key: str) -> set[str]:
        client = await self._get_client()
        return set(await client.smembers(key))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Redis connection closed")


_store: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    """Return the active store based on feature flags. One instance per process."""
    global _store
    if _store is None:
        if get_flags().use_redis:
            _store = RedisStore()
            logger.info("Key-value store: redis")
        else:
            _store = MemoryStore()
            logger.info("Key-value store: memory (process-local)")
    return _store


async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
