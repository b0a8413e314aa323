"""State tree merge and comparison rules.

Persisted state, reducer defaults and caller overrides are all plain
JSON-like trees. Combining them follows one rule: two mappings merge key by
key (the override wins on conflicts), anything else is replaced wholesale.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, TypeAlias

StateTree: TypeAlias = None | bool | int | float | str | list["StateTree"] | dict[str, "StateTree"]


def clone(value: Any) -> Any:
    """Deep copy of a state tree."""
    return copy.deepcopy(value)


def merge_or_replace(base: Any, override: Any) -> Any:
    """Merge *override* over *base*.

    Both mappings: recursive key-wise merge, keys from *override* win.
    Otherwise *override* replaces *base* entirely (lists are not merged).
    The result never aliases either input.
    """
    if not (isinstance(base, Mapping) and isinstance(override, Mapping)):
        return clone(override)

    merged: dict[str, Any] = {key: clone(value) for key, value in base.items()}
    for key, value in override.items():
        if key in merged:
            merged[key] = merge_or_replace(merged[key], value)
        else:
            merged[key] = clone(value)
    return merged


def is_equal(left: Any, right: Any) -> bool:
    """Structural deep equality of two state trees.

    Unlike ``==``, booleans never equal numbers (``True != 1``), matching
    how the values round-trip through JSON storage.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(is_equal(value, right[key]) for key, value in left.items())

    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(is_equal(a, b) for a, b in zip(left, right, strict=True))

    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right

    if isinstance(left, (Mapping, list, tuple)) or isinstance(right, (Mapping, list, tuple)):
        return False

    return bool(left == right)
