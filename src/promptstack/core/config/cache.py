"""Process-wide cache of merged configuration.

Keyed by project root plus a fingerprint of ``PROMPTSTACK_*`` environment
variables and project config file mtimes, so tests and long-running
processes that change either get a fresh load.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from promptstack.core.utils.io import iter_yaml_files
from promptstack.core.utils.paths import get_project_config_dir, resolve_project_root
from promptstack.core.utils.profiling import span

ENV_PREFIX = "PROMPTSTACK_"

_config_cache: Dict[str, Dict[str, Any]] = {}
_cache_clearers: Dict[str, Callable[[], None]] = {}


def _normalize_repo_root(repo_root: Optional[Path]) -> Path:
    if repo_root is None:
        return resolve_project_root()
    return Path(repo_root).expanduser().resolve()


def _fingerprint(items: Any) -> str:
    return hashlib.sha256(repr(items).encode("utf-8")).hexdigest()[:12]


def _cache_key(repo_root: Path) -> str:
    env_items = sorted(
        (k, os.environ.get(k, "")) for k in os.environ if k.startswith(ENV_PREFIX)
    )
    files = []
    for path in iter_yaml_files(get_project_config_dir(repo_root)):
        try:
            st = path.stat()
            files.append((path.name, int(st.st_mtime_ns), int(st.st_size)))
        except OSError:
            files.append((path.name, 0, 0))
    return f"{repo_root}:env={_fingerprint(env_items)}:cfg={_fingerprint(files)}"


def get_cached_config(repo_root: Optional[Path] = None) -> Dict[str, Any]:
    """Return the merged configuration for ``repo_root`` (cached).

    The returned dict is shared; treat it as immutable.
    """
    normalized_root = _normalize_repo_root(repo_root)
    key = _cache_key(normalized_root)

    from .manager import ConfigManager

    with span("config.cache.get"):
        if key not in _config_cache:
            with span("config.cache.miss"):
                manager = ConfigManager(repo_root=normalized_root)
                _config_cache[key] = manager._load_config_uncached(validate=False)
        return _config_cache[key]


def clear_all_caches() -> None:
    """Drop cached configuration and run every registered clearer."""
    _config_cache.clear()
    for clearer in list(_cache_clearers.values()):
        clearer()


def register_cache_clearer(name: str, clearer: Callable[[], None]) -> None:
    """Register an extra cache clearer to run inside :func:`clear_all_caches`."""
    _cache_clearers[name] = clearer


def is_cached(repo_root: Optional[Path] = None) -> bool:
    return _cache_key(_normalize_repo_root(repo_root)) in _config_cache


__all__ = [
    "ENV_PREFIX",
    "get_cached_config",
    "clear_all_caches",
    "register_cache_clearer",
    "is_cached",
]
