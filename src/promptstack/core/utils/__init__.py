"""Shared utilities for promptstack."""
from __future__ import annotations

from .merge import deep_merge, merge_arrays
from .profiling import Profiler, SpanRecord, enable_profiler, get_active_profiler, span

__all__ = [
    "deep_merge",
    "merge_arrays",
    "Profiler",
    "SpanRecord",
    "enable_profiler",
    "get_active_profiler",
    "span",
]
