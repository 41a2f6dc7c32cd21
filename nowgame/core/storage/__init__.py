"""Storage drivers: the atomic key/value layer under every repository."""

from nowgame.core.storage.driver import StorageDriver
from nowgame.core.storage.factory import create_storage_driver
from nowgame.core.storage.memory import InMemoryStorageDriver

__all__ = ["StorageDriver", "InMemoryStorageDriver", "create_storage_driver"]
