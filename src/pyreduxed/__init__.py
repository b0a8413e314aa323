"""pyreduxed - Async reducer store kept in sync with key-value storage."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyreduxed")
except PackageNotFoundError:
    __version__ = "0+local"
from pyreduxed.config import ReduxedConfig, clamp_buffer_life
from pyreduxed.exceptions import (
    ReduxedConfigError,
    ReduxedConstructionError,
    ReduxedError,
    ReduxedObserverError,
    ReduxedPersistenceError,
    ReduxedStorageError,
    ReduxedStorageLimitError,
)
from pyreduxed.factory import create_store_creator
from pyreduxed.state import ReduxedStore, StateObservable, Subscription
from pyreduxed.storage import (
    AsyncStorage,
    CallbackStorage,
    FileNamespace,
    MemoryNamespace,
    StorageChange,
    WrappedStorage,
)

__all__ = [
    "__version__",
    "AsyncStorage",
    "CallbackStorage",
    "FileNamespace",
    "MemoryNamespace",
    "ReduxedConfig",
    "ReduxedConfigError",
    "ReduxedConstructionError",
    "ReduxedError",
    "ReduxedObserverError",
    "ReduxedPersistenceError",
    "ReduxedStorageError",
    "ReduxedStorageLimitError",
    "ReduxedStore",
    "StateObservable",
    "StorageChange",
    "Subscription",
    "WrappedStorage",
    "clamp_buffer_life",
    "create_store_creator",
]
