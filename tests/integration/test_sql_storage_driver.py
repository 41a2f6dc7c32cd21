"""
Integration tests for SqlStorageDriver on SQLite (aiosqlite).

Uses an in-memory database per test, or a file under tmp_path where a
test needs data to survive a reconnect.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from nowgame.core.exceptions import StorageNotInitializedError
from nowgame.core.storage.sql_driver import KeyValueEntry, SqlStorageDriver

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest_asyncio.fixture
async def sql_driver() -> AsyncGenerator[SqlStorageDriver, None]:
    driver = SqlStorageDriver("sqlite+aiosqlite:///:memory:")
    await driver.init()
    yield driver
    await driver.close()


async def test_requires_init():
    driver = SqlStorageDriver("sqlite+aiosqlite:///:memory:")

    with pytest.raises(StorageNotInitializedError):
        await driver.get_string("k")


async def test_set_get_and_overwrite(sql_driver):
    """Writing an existing key replaces its value."""
    await sql_driver.set_string("wisdom_data", '{"skills":[]}')
    await sql_driver.set_string("wisdom_data", '{"skills":[1]}')

    assert await sql_driver.get_string("wisdom_data") == '{"skills":[1]}'
    assert await sql_driver.get_string("missing") is None


async def test_unicode_and_large_values(sql_driver):
    value = "读书" * 50_000

    await sql_driver.set_string("big", value)

    assert await sql_driver.get_string("big") == value


async def test_keys_remove_and_clear(sql_driver):
    for key in ("a", "b", "c"):
        await sql_driver.set_string(key, key)

    await sql_driver.remove("b")
    await sql_driver.remove("never-existed")

    assert await sql_driver.get_keys() == {"a", "c"}

    await sql_driver.clear()
    assert await sql_driver.get_keys() == set()


async def test_transaction_rolls_back_on_error(sql_driver):
    """An exception inside get_transaction leaves no trace."""
    with pytest.raises(RuntimeError):
        async with sql_driver.get_transaction() as session:
            session.add(KeyValueEntry(key="ghost", value="x"))
            await session.flush()
            raise RuntimeError("abort")

    assert await sql_driver.get_string("ghost") is None


async def test_init_is_idempotent(sql_driver):
    await sql_driver.set_string("k", "v")

    await sql_driver.init()

    assert await sql_driver.get_string("k") == "v"


async def test_data_survives_reconnect(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'nowgame.db'}"
    first = SqlStorageDriver(url)
    await first.init()
    await first.set_string("schema_version", "4")
    await first.close()

    second = SqlStorageDriver(url)
    await second.init()
    try:
        assert await second.get_string("schema_version") == "4"
    finally:
        await second.close()
