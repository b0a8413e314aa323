"""Custom exception hierarchy for pyreduxed."""

from __future__ import annotations


class ReduxedError(Exception):
    """Base exception for all pyreduxed errors."""


class ReduxedConfigError(ReduxedError):
    """Invalid or missing configuration."""


class ReduxedObserverError(ReduxedConfigError, TypeError):
    """Observer passed to ``StateObservable.subscribe()`` is not an object."""


class ReduxedConstructionError(ReduxedError):
    """The injected store factory failed to build a reducer store.

    Fatal for the call that needed the store (``init()`` or a dispatch
    opening a new write buffer); nothing is retried.
    """


class ReduxedStorageError(ReduxedError):
    """Storage backend read/write failure."""

    def __init__(
        self,
        message: str,
        *,
        area: str = "",
        key: str = "",
    ) -> None:
        self.area = area
        self.key = key
        super().__init__(message)


class ReduxedPersistenceError(ReduxedStorageError):
    """Writing the state to the storage backend failed.

    The in-memory state stays correct; only the durable copy lags behind
    until the next successful write.
    """


class ReduxedStorageLimitError(ReduxedPersistenceError):
    """Serialized state exceeds the per-item quota of the storage area."""

    def __init__(
        self,
        message: str,
        *,
        area: str = "",
        key: str = "",
        size: int = 0,
        quota: int | None = None,
    ) -> None:
        self.size = size
        self.quota = quota
        super().__init__(message, area=area, key=key)
