"""
RedisStorageDriver: key/value storage on Redis through redis.asyncio.

Every key is namespaced with a prefix (`nowgame:` by default) so the store
can share a Redis database. `get_keys` walks the namespace with SCAN and
`clear` only deletes prefixed keys.
"""

from __future__ import annotations

from typing import Optional

from redis.asyncio.client import Redis as AsyncRedis
from redis.exceptions import RedisError

from nowgame.core.exceptions import StorageError
from nowgame.core.logging.logger import get_logger
from nowgame.core.storage.driver import StorageDriver

logger = get_logger(__name__)


class RedisStorageDriver(StorageDriver):
    """Async Redis-backed storage driver."""

    name = "redis"

    def __init__(
        self,
        url: str,
        *,
        key_prefix: str = "nowgame:",
        password: Optional[str] = None,
        socket_timeout: float = 5.0,
        client: Optional[AsyncRedis] = None,
    ) -> None:
        super().__init__()
        self._url = url
        self._prefix = key_prefix
        self._password = password
        self._socket_timeout = socket_timeout
        self._client: Optional[AsyncRedis] = client

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _strip_prefix(self, key: str) -> str:
        return key[len(self._prefix):] if key.startswith(self._prefix) else key

    @property
    def client(self) -> AsyncRedis:
        self._ensure_initialized()
        assert self._client is not None
        return self._client

    async def init(self) -> None:
        if self._initialized:
            logger.debug("RedisStorageDriver already initialized; skipping")
            return

        created = self._client is None
        if created:
            self._client = AsyncRedis.from_url(
                self._url,
                password=self._password,
                socket_timeout=self._socket_timeout,
                encoding="utf-8",
                decode_responses=True,
            )

        try:
            await self._client.ping()
        except RedisError as exc:
            logger.error(
                "RedisStorageDriver initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            if created:
                await self._client.aclose()
                self._client = None
            raise StorageError("init", None, exc) from exc

        self._initialized = True
        logger.info("RedisStorageDriver initialized", extra={"key_prefix": self._prefix})

    async def get_string(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(self._full_key(key))
        except RedisError as exc:
            raise StorageError("get_string", key, exc) from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set_string(self, key: str, value: str) -> None:
        try:
            await self.client.set(self._full_key(key), value)
        except RedisError as exc:
            logger.error(
                "RedisStorageDriver write failed",
                extra={"storage_key": key, "error": str(exc)},
                exc_info=True,
            )
            raise StorageError("set_string", key, exc) from exc

    async def remove(self, key: str) -> None:
        try:
            await self.client.delete(self._full_key(key))
        except RedisError as exc:
            raise StorageError("remove", key, exc) from exc

    async def get_keys(self) -> set[str]:
        keys: set[str] = set()
        try:
            async for raw in self.client.scan_iter(match=f"{self._prefix}*"):
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8")
                keys.add(self._strip_prefix(raw))
        except RedisError as exc:
            raise StorageError("get_keys", None, exc) from exc
        return keys

    async def clear(self) -> None:
        keys = await self.get_keys()
        if not keys:
            return
        try:
            await self.client.delete(*(self._full_key(k) for k in keys))
        except RedisError as exc:
            raise StorageError("clear", None, exc) from exc

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._initialized = False
        logger.info("RedisStorageDriver closed")
