"""
promptstack data resource helpers.

Provides access to the bundled configuration defaults, the reference section
list, and the JSON schemas (expressed in YAML) using importlib.resources.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml


def get_data_path(subpackage: str, filename: str = "") -> Path:
    """
    Get absolute path to a data file or directory.

    Args:
        subpackage: Name of the data subpackage (e.g., "config", "sections")
        filename: Optional filename within the subpackage

    Returns:
        Absolute path to the file or directory

    Example:
        >>> get_data_path("sections", "default.yaml")
        PosixPath('/path/to/promptstack/data/sections/default.yaml')
    """
    pkg = resources.files("promptstack.data")
    base = Path(str(pkg / subpackage))
    return base / filename if filename else base


@lru_cache(maxsize=64)
def read_yaml(subpackage: str, filename: str) -> Any:
    """
    Read and parse a bundled YAML data file (cached).

    Callers must treat the returned structure as read-only.
    """
    path = get_data_path(subpackage, filename)
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def list_files(subpackage: str, pattern: str = "*") -> list[Path]:
    """List files matching pattern in a data subpackage."""
    return sorted(get_data_path(subpackage).glob(pattern))


# Clear caches (useful for testing)
def clear_caches() -> None:
    """Clear all read caches."""
    read_yaml.cache_clear()


__all__ = [
    "get_data_path",
    "read_yaml",
    "list_files",
    "clear_caches",
]
