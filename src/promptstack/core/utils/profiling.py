"""Timing helpers for composition runs.

Two layers:
- ``Timer`` measures one phase and is always on (composition metadata
  reports load and transform durations).
- ``Profiler``/``span`` collect nested spans across a whole CLI invocation.
  ``span`` is a no-op unless a profiler has been enabled for the current
  context (ContextVar based, so no plumbing through call signatures).
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from time import perf_counter
from typing import Any, Dict, Iterator, List, Optional


_ACTIVE_PROFILER: ContextVar["Profiler | None"] = ContextVar("_ACTIVE_PROFILER", default=None)


class Timer:
    """Wall-clock stopwatch reporting whole milliseconds.

    Example:
        >>> with Timer() as t:
        ...     pass
        >>> t.elapsed_ms >= 0
        True
    """

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = perf_counter()

    @property
    def elapsed_ms(self) -> int:
        if self._start is None:
            return 0
        end = self._end if self._end is not None else perf_counter()
        return int(round((end - self._start) * 1000.0))


@dataclass(frozen=True)
class SpanRecord:
    name: str
    duration_ms: float
    depth: int
    meta: Dict[str, Any]


class Profiler:
    """Collects named spans with their nesting depth."""

    def __init__(self) -> None:
        self._spans: List[SpanRecord] = []
        self._depth = 0

    @property
    def spans(self) -> List[SpanRecord]:
        return list(self._spans)

    @contextmanager
    def span(self, name: str, **meta: Any) -> Iterator[None]:
        depth = self._depth
        self._depth += 1
        start = perf_counter()
        try:
            yield
        finally:
            self._depth -= 1
            self._spans.append(
                SpanRecord(
                    name=name,
                    duration_ms=(perf_counter() - start) * 1000.0,
                    depth=depth,
                    meta=dict(meta),
                )
            )

    def summary_ms(self) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for record in self._spans:
            totals[record.name] = totals.get(record.name, 0.0) + record.duration_ms
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spans": [asdict(s) for s in self._spans],
            "summary_ms": self.summary_ms(),
        }


@contextmanager
def enable_profiler(profiler: Profiler) -> Iterator[None]:
    token = _ACTIVE_PROFILER.set(profiler)
    try:
        yield
    finally:
        _ACTIVE_PROFILER.reset(token)


@contextmanager
def span(name: str, **meta: Any) -> Iterator[None]:
    profiler = _ACTIVE_PROFILER.get()
    if profiler is None:
        yield
        return
    with profiler.span(name, **meta):
        yield


def get_active_profiler() -> Optional[Profiler]:
    return _ACTIVE_PROFILER.get()


__all__ = ["Timer", "Profiler", "SpanRecord", "enable_profiler", "span", "get_active_profiler"]
