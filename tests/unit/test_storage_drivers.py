"""
Unit tests for the storage drivers that run without external services:
the in-memory driver, the Redis driver against a mocked client and the
driver factory.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from nowgame.core.exceptions import (
    ConfigurationError,
    StorageError,
    StorageNotInitializedError,
)
from nowgame.core.storage.factory import create_storage_driver
from nowgame.core.storage.memory import InMemoryStorageDriver
from nowgame.core.storage.redis_driver import RedisStorageDriver


@pytest.fixture
def redis_client(mocker):
    """AsyncMock standing in for redis.asyncio.Redis."""
    client = mocker.AsyncMock()
    store: dict[str, str] = {}

    async def _get(key):
        return store.get(key)

    async def _set(key, value):
        store[key] = value

    async def _delete(*keys):
        for key in keys:
            store.pop(key, None)

    async def _scan_iter(match):
        prefix = match.rstrip("*")
        for key in list(store):
            if key.startswith(prefix):
                yield key

    client.get.side_effect = _get
    client.set.side_effect = _set
    client.delete.side_effect = _delete
    client.scan_iter = mocker.MagicMock(side_effect=_scan_iter)
    client.store = store
    return client


@pytest.mark.asyncio
class TestInMemoryDriver:
    async def test_requires_init(self):
        driver = InMemoryStorageDriver()

        with pytest.raises(StorageNotInitializedError):
            await driver.get_string("k")

    async def test_basic_operations(self, memory_driver):
        await memory_driver.set_string("a", "1")
        await memory_driver.set_string("b", "2")
        await memory_driver.remove("a")

        assert await memory_driver.get_string("a") is None
        assert await memory_driver.get_keys() == {"b"}

        await memory_driver.clear()
        assert await memory_driver.get_keys() == set()

    async def test_initial_contents(self):
        driver = InMemoryStorageDriver({"schema_version": "3"})
        await driver.init()

        assert await driver.get_string("schema_version") == "3"
        assert driver.snapshot() == {"schema_version": "3"}


@pytest.mark.asyncio
class TestRedisDriver:
    """Key prefixing and error wrapping."""

    async def test_init_pings_server(self, redis_client):
        driver = RedisStorageDriver("redis://unused", client=redis_client)

        await driver.init()

        redis_client.ping.assert_awaited_once()
        assert driver.is_initialized

    async def test_keys_are_prefixed(self, redis_client):
        driver = RedisStorageDriver("redis://unused", key_prefix="ng:", client=redis_client)
        await driver.init()

        await driver.set_string("wisdom_data", "{}")

        assert redis_client.store == {"ng:wisdom_data": "{}"}
        assert await driver.get_string("wisdom_data") == "{}"
        assert await driver.get_keys() == {"wisdom_data"}

    async def test_clear_only_touches_own_prefix(self, redis_client):
        redis_client.store["other:key"] = "x"
        driver = RedisStorageDriver("redis://unused", key_prefix="ng:", client=redis_client)
        await driver.init()
        await driver.set_string("a", "1")

        await driver.clear()

        assert redis_client.store == {"other:key": "x"}

    async def test_redis_errors_become_storage_errors(self, redis_client):
        redis_client.set.side_effect = RedisConnectionError("gone")
        driver = RedisStorageDriver("redis://unused", client=redis_client)
        await driver.init()

        with pytest.raises(StorageError) as exc_info:
            await driver.set_string("k", "v")

        assert exc_info.value.operation == "set_string"
        assert exc_info.value.key == "k"
        assert exc_info.value.is_retryable

    async def test_failed_ping_closes_created_client(self, mocker, redis_client):
        """A client built from the URL is released when the server is unreachable."""
        redis_client.ping.side_effect = RedisConnectionError("refused")
        from_url = mocker.patch(
            "nowgame.core.storage.redis_driver.AsyncRedis.from_url",
            return_value=redis_client,
        )
        driver = RedisStorageDriver("redis://localhost:6379/0")

        with pytest.raises(StorageError):
            await driver.init()

        from_url.assert_called_once()
        redis_client.aclose.assert_awaited_once()
        assert not driver.is_initialized

        # A retry builds a fresh client instead of reusing the closed one.
        redis_client.ping.side_effect = None
        await driver.init()
        assert from_url.call_count == 2
        assert driver.is_initialized

    async def test_failed_ping_leaves_injected_client_open(self, redis_client):
        redis_client.ping.side_effect = RedisConnectionError("refused")
        driver = RedisStorageDriver("redis://unused", client=redis_client)

        with pytest.raises(StorageError):
            await driver.init()

        redis_client.aclose.assert_not_awaited()

    async def test_close_releases_client(self, redis_client):
        driver = RedisStorageDriver("redis://unused", client=redis_client)
        await driver.init()

        await driver.close()

        redis_client.aclose.assert_awaited_once()
        assert not driver.is_initialized


class TestFactory:
    def test_memory_backend(self):
        assert isinstance(create_storage_driver("memory"), InMemoryStorageDriver)

    def test_backend_name_is_case_insensitive(self):
        assert isinstance(create_storage_driver(" Memory "), InMemoryStorageDriver)

    def test_redis_backend(self):
        assert isinstance(create_storage_driver("redis"), RedisStorageDriver)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_storage_driver("mongo")

        assert exc_info.value.config_key == "STORAGE_BACKEND"
