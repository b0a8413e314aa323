"""Storage adapters and bundled backends."""

from pyreduxed.storage.adapters import AsyncStorage, CallbackStorage
from pyreduxed.storage.base import (
    AsyncStorageArea,
    AsyncStorageNamespace,
    CallbackStorageArea,
    CallbackStorageNamespace,
    StorageChange,
    WrappedStorage,
)
from pyreduxed.storage.file import FileNamespace, FileStorageArea
from pyreduxed.storage.memory import MemoryNamespace, MemoryStorageArea

__all__ = [
    "AsyncStorage",
    "AsyncStorageArea",
    "AsyncStorageNamespace",
    "CallbackStorage",
    "CallbackStorageArea",
    "CallbackStorageNamespace",
    "FileNamespace",
    "FileStorageArea",
    "MemoryNamespace",
    "MemoryStorageArea",
    "StorageChange",
    "WrappedStorage",
]
