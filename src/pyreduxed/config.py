"""Storage/buffer configuration for pyreduxed."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyreduxed._constants import (
    DEFAULT_BUFFER_LIFE_MS,
    DEFAULT_STORAGE_AREA,
    DEFAULT_STORAGE_KEY,
    MAX_BUFFER_LIFE_MS,
    MIN_BUFFER_LIFE_MS,
)
from pyreduxed.exceptions import ReduxedConfigError


def clamp_buffer_life(value: float | None) -> float:
    """Clamp a write-buffer lifetime (ms) into the supported range.

    ``None`` selects the default lifetime.
    """
    if value is None:
        return float(DEFAULT_BUFFER_LIFE_MS)
    return float(min(max(value, MIN_BUFFER_LIFE_MS), MAX_BUFFER_LIFE_MS))


@dataclasses.dataclass(frozen=True)
class ReduxedConfig:
    """Where the state is stored and how dispatches are coalesced.

    Parameters
    ----------
    storage_area : str
        Name of the storage area holding the state (e.g. ``"sync"``,
        ``"local"``). Defaults to ``"sync"``.
    storage_key : str
        Key the whole state tree is stored under. Defaults to ``"reduxed"``.
    buffer_life : float
        Lifetime of the write buffer in milliseconds. All dispatches made
        within one lifetime share one reducer store and cost at most one
        storage write. Clamped to ``[0, 2000]``, defaults to ``100``.
    """

    storage_area: str = DEFAULT_STORAGE_AREA
    storage_key: str = DEFAULT_STORAGE_KEY
    buffer_life: float = DEFAULT_BUFFER_LIFE_MS

    def __post_init__(self) -> None:
        if not self.storage_area or not self.storage_area.strip():
            raise ReduxedConfigError("storage_area must be non-empty")
        if not self.storage_key or not self.storage_key.strip():
            raise ReduxedConfigError("storage_key must be non-empty")
        # Frozen dataclass: normalize through object.__setattr__.
        object.__setattr__(self, "buffer_life", clamp_buffer_life(self.buffer_life))

    @classmethod
    def from_env(cls, **overrides: Any) -> ReduxedConfig:
        """Create configuration from environment variables.

        Reads ``REDUXED_STORAGE_AREA``, ``REDUXED_STORAGE_KEY`` and
        ``REDUXED_BUFFER_LIFE``. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ReduxedConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "REDUXED_STORAGE_AREA": "storage_area",
            "REDUXED_STORAGE_KEY": "storage_key",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        buffer_env = env.get("REDUXED_BUFFER_LIFE")
        if buffer_env is not None and "buffer_life" not in overrides:
            try:
                config_kwargs["buffer_life"] = float(buffer_env)
            except ValueError as exc:
                raise ReduxedConfigError(f"REDUXED_BUFFER_LIFE is not a number: {buffer_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
