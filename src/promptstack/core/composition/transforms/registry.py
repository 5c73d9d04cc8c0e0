"""Name -> function lookup for section transforms.

Transforms are pure functions with the signature::

    def transform(raw_data, context: AssembledContext, section: SectionDefinition) -> Any

They may read anything on the context but never write to it. Built-in
transforms register themselves at import time:

    @register_transform("mapGoals")
    def map_goals(raw, context, section):
        ...
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

TransformFn = Callable[[Any, Any, Any], Any]


class TransformRegistry:
    """Registry of named transforms.

    Usage:
        registry = TransformRegistry()

        @registry.register("upper")
        def upper(raw, context, section):
            return str(raw).upper()
    """

    def __init__(self) -> None:
        self._transforms: Dict[str, TransformFn] = {}

    def register(self, name: str) -> Callable[[TransformFn], TransformFn]:
        def decorator(func: TransformFn) -> TransformFn:
            self._transforms[name] = func
            return func
        return decorator

    def add(self, name: str, func: TransformFn) -> None:
        self._transforms[name] = func

    def get(self, name: str) -> Optional[TransformFn]:
        return self._transforms.get(name)

    def has(self, name: str) -> bool:
        return name in self._transforms

    def __contains__(self, name: object) -> bool:
        return name in self._transforms

    def names(self) -> List[str]:
        return sorted(self._transforms)


default_registry = TransformRegistry()


def register_transform(name: str) -> Callable[[TransformFn], TransformFn]:
    """Register a transform in the default registry."""
    return default_registry.register(name)


def get_transform(name: str) -> Optional[TransformFn]:
    return default_registry.get(name)


def run_transform_chain(
    names: Iterable[str],
    raw_data: Any,
    context: Any,
    section: Any,
    *,
    registry: Optional[TransformRegistry] = None,
    errors: Optional[List[Dict[str, Any]]] = None,
) -> Any:
    """Feed ``raw_data`` through each named transform in order.

    An unregistered name is logged, recorded in ``errors`` and skipped;
    the value reaching it is handed unchanged to the next step.
    """
    registry = registry or default_registry
    value = raw_data
    for name in names:
        fn = registry.get(name)
        if fn is None:
            logger.error("Unknown transform '%s' in section '%s'", name, getattr(section, "id", "?"))
            if errors is not None:
                errors.append({"section": getattr(section, "id", None), "transform": name})
            continue
        value = fn(value, context, section)
    return value


__all__ = [
    "TransformFn",
    "TransformRegistry",
    "default_registry",
    "get_transform",
    "register_transform",
    "run_transform_chain",
]
