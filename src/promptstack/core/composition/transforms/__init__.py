"""Built-in section transforms.

Importing this package registers every built-in transform in
``default_registry``.
"""
from __future__ import annotations

from .registry import (
    TransformFn,
    TransformRegistry,
    default_registry,
    get_transform,
    register_transform,
    run_transform_chain,
)

# Registration happens at import time.
from . import (  # noqa: F401,E402
    activities,
    curriculum,
    identity,
    instructions,
    memories,
    pedagogy,
    personality,
    subject,
    targets,
    teaching,
    trust,
    voice,
)

__all__ = [
    "TransformFn",
    "TransformRegistry",
    "default_registry",
    "get_transform",
    "register_transform",
    "run_transform_chain",
]
