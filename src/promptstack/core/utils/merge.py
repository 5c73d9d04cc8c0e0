"""Dictionary merging for layered configuration.

Later layers win. Nested mappings merge key by key; lists follow the
override markers below, so a project file can extend a bundled list
instead of replacing it:

- ``["+", a, b]`` appends ``a, b`` to the lower layer's list
- ``["=", a, b]`` replaces it explicitly
- any other list replaces it
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a new dict with ``override`` layered over ``base``.

    Neither input is mutated.

    Example:
        >>> deep_merge({"composition": {"versionTag": "2.0"}},
        ...            {"composition": {"privatePrefix": "__"}})
        {'composition': {'versionTag': '2.0', 'privatePrefix': '__'}}
    """
    merged: Dict[str, Any] = dict(base)
    for key, incoming in (override or {}).items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(incoming, dict):
            merged[key] = deep_merge(current, incoming)
        elif isinstance(current, list) and isinstance(incoming, list):
            merged[key] = merge_arrays(current, incoming)
        else:
            merged[key] = incoming
    return merged


def merge_arrays(base: List[Any], override: List[Any]) -> List[Any]:
    """Merge two lists honouring the ``+`` / ``=`` marker in ``override[0]``.

    Example:
        >>> merge_arrays(["a"], ["+", "b"])
        ['a', 'b']
        >>> merge_arrays(["a"], ["b"])
        ['b']
    """
    if not override:
        return list(base)
    marker = override[0]
    if marker == "+":
        return [*base, *override[1:]]
    if marker == "=":
        return list(override[1:])
    return list(override)


__all__ = ["deep_merge", "merge_arrays"]
