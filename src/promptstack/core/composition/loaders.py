"""Loader seam: how a run gets its bag of input fragments.

The composition core never talks to storage. A caller supplies a
:class:`DataLoader`; the two provided here are

- :class:`LoaderRegistry` - named fetch functions run in parallel, one per
  fragment, the bag returned only once every fetch has finished;
- :class:`StaticLoader` - an in-memory bag (fixtures, CLI input files).
"""
from __future__ import annotations

import concurrent.futures
import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from promptstack.core.exceptions import PromptStackError
from promptstack.core.utils.io import read_structured

logger = logging.getLogger(__name__)

FetchFn = Callable[[str, Mapping[str, Any]], Any]

# Fragments normalised to an empty list / zero when a fetcher returns None.
LIST_FRAGMENTS = (
    "memories",
    "recentCalls",
    "behaviorTargets",
    "callerTargets",
    "callerAttributes",
    "goals",
    "playbooks",
    "systemSpecs",
)
COUNT_FRAGMENTS = ("callCount",)


@runtime_checkable
class DataLoader(Protocol):
    def load(self, subject_id: str, spec_config: Mapping[str, Any]) -> Mapping[str, Any]:
        ...


def normalise_bag(bag: Mapping[str, Any]) -> Dict[str, Any]:
    data = dict(bag)
    for name in LIST_FRAGMENTS:
        if name in data and data[name] is None:
            data[name] = []
    for name in COUNT_FRAGMENTS:
        if name in data and data[name] is None:
            data[name] = 0
    return data


class LoaderRegistry:
    """Named fragment fetchers executed concurrently.

    Usage:
        loaders = LoaderRegistry()

        @loaders.register("memories")
        def fetch_memories(subject_id, spec_config):
            return db.memories(subject_id, limit=spec_config.get("memoriesLimit", 50))

        bag = loaders.load("caller-1", {"memoriesLimit": 20})
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        self._fetchers: Dict[str, FetchFn] = {}
        self.max_workers = max_workers

    def register(self, name: str) -> Callable[[FetchFn], FetchFn]:
        def decorator(func: FetchFn) -> FetchFn:
            self._fetchers[name] = func
            return func
        return decorator

    def add(self, name: str, func: FetchFn) -> None:
        self._fetchers[name] = func

    def names(self) -> List[str]:
        return sorted(self._fetchers)

    def load_all(self, subject_id: str, spec_config: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run every fetcher and return the bag once all have completed.

        Raises:
            PromptStackError: If any fetcher failed; raised after the others finish.
        """
        spec_config = spec_config or {}
        bag: Dict[str, Any] = {}
        failures: Dict[str, BaseException] = {}

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(fetch, subject_id, spec_config): name
                for name, fetch in self._fetchers.items()
            }
            for future in concurrent.futures.as_completed(futures):
                name = futures[future]
                try:
                    bag[name] = future.result()
                except Exception as e:
                    logger.error("Loader '%s' failed for %s: %s", name, subject_id, e)
                    failures[name] = e

        if failures:
            first = sorted(failures)[0]
            raise PromptStackError(
                f"{len(failures)} loader(s) failed: {', '.join(sorted(failures))}",
                context={"subject": subject_id, "failed": sorted(failures)},
            ) from failures[first]
        logger.debug("Loaded %d fragments for %s", len(bag), subject_id)
        return normalise_bag(bag)

    def load(self, subject_id: str, spec_config: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.load_all(subject_id, spec_config)


class StaticLoader:
    """Serves a fixed bag regardless of subject id."""

    def __init__(self, bag: Mapping[str, Any]) -> None:
        self._bag = dict(bag)

    @classmethod
    def from_file(cls, path: Path) -> "StaticLoader":
        payload = read_structured(Path(path), raise_on_error=True)
        if not isinstance(payload, Mapping):
            raise PromptStackError(f"Data file must hold a mapping: {path}", context={"path": str(path)})
        return cls(payload)

    def load(self, subject_id: str, spec_config: Mapping[str, Any]) -> Mapping[str, Any]:
        return normalise_bag(copy.deepcopy(self._bag))


__all__ = ["DataLoader", "LoaderRegistry", "StaticLoader", "normalise_bag"]
