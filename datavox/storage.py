"""
Key-Value Storage.

A small async key-value interface used by the template and process
stores, with three interchangeable backends:

- ``MemoryStorage``: process-local dict (tests, local development).
- ``RedisStorage``: JSON values under a ``datavox:`` key prefix.
- ``SupabaseStorage``: rows in a ``kv_store`` table (``key`` text primary
  key, ``value`` jsonb).

Values must be JSON-serialisable. The backend is selected with the
``STORAGE_BACKEND`` setting.
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as aioredis
from supabase import Client, create_client

from datavox.config import StorageBackend, get_settings
from datavox.logging_config import get_logger

logger = get_logger(__name__)

REDIS_KEY_PREFIX = "datavox:"
SUPABASE_TABLE = "kv_store"


class StorageAdapter(ABC):
    """Async key-value interface shared by every backend."""

    @abstractmethod
    async def init(self) -> None: ...

    @abstractmethod
    async def get_item(self, key: str) -> Any | None: ...

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> None: ...

    @abstractmethod
    async def remove_item(self, key: str) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...


class MemoryStorage(StorageAdapter):
    """Dict-backed storage. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def init(self) -> None:
        return None

    async def get_item(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set_item(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()


class RedisStorage(StorageAdapter):
    """Redis-backed storage holding JSON-encoded values."""

    def __init__(self, redis_url: str | None = None, client: Optional[aioredis.Redis] = None) -> None:
        self._redis_url = redis_url or get_settings().redis_url
        self._redis: Optional[aioredis.Redis] = client

    async def init(self) -> None:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
            logger.info("redis_storage_initialized")

    async def close(self) -> None:
        if self._redis:
            await self._redis.close()
            self._redis = None

    @property
    def redis(self) -> aioredis.Redis:
        if not self._redis:
            raise RuntimeError("RedisStorage not initialized. Call init() first.")
        return self._redis

    async def get_item(self, key: str) -> Any | None:
        raw = await self.redis.get(REDIS_KEY_PREFIX + key)
        return json.loads(raw) if raw is not None else None

    async def set_item(self, key: str, value: Any) -> None:
        await self.redis.set(REDIS_KEY_PREFIX + key, json.dumps(value))

    async def remove_item(self, key: str) -> None:
        await self.redis.delete(REDIS_KEY_PREFIX + key)

    async def clear(self) -> None:
        keys = [key async for key in self.redis.scan_iter(match=f"{REDIS_KEY_PREFIX}*")]
        if keys:
            await self.redis.delete(*keys)


class SupabaseStorage(StorageAdapter):
    """Supabase-backed storage using a single key/value table."""

    def __init__(self, client: Optional[Client] = None) -> None:
        self._client: Optional[Client] = client

    async def init(self) -> None:
        if self._client is not None:
            return

        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_service_key:
            logger.warning(
                "supabase_credentials_missing",
                url=bool(settings.supabase_url),
                key=bool(settings.supabase_service_key),
            )

        try:
            self._client = create_client(settings.supabase_url, settings.supabase_service_key)
            logger.info("supabase_storage_initialized", url=settings.supabase_url)
        except Exception as e:
            logger.error("supabase_init_failed", error=str(e))
            raise

    @property
    def client(self) -> Client:
        if not self._client:
            raise RuntimeError("SupabaseStorage not initialized. Call init() first.")
        return self._client

    async def get_item(self, key: str) -> Any | None:
        response = (
            self.client.table(SUPABASE_TABLE)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if response.data:
            return response.data[0]["value"]
        return None

    async def set_item(self, key: str, value: Any) -> None:
        self.client.table(SUPABASE_TABLE).upsert({"key": key, "value": value}).execute()

    async def remove_item(self, key: str) -> None:
        self.client.table(SUPABASE_TABLE).delete().eq("key", key).execute()

    async def clear(self) -> None:
        self.client.table(SUPABASE_TABLE).delete().neq("key", "").execute()


def create_storage(backend: StorageBackend | None = None) -> StorageAdapter:
    """Build (but do not initialise) the configured storage backend."""
    backend = backend or get_settings().storage_backend
    if backend == StorageBackend.REDIS:
        return RedisStorage()
    if backend == StorageBackend.SUPABASE:
        return SupabaseStorage()
    return MemoryStorage()
