"""File readers for configuration and section files."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

import yaml


def read_yaml(path: Path, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read a YAML file.

    Returns ``default`` if the file is missing, empty or invalid, unless
    ``raise_on_error`` is True.

    Examples:
        >>> cfg = read_yaml(Path("composition.yaml"), default={})
    """
    path = Path(path)
    if not path.exists():
        if raise_on_error:
            raise FileNotFoundError(f"File not found: {path}")
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if data is not None else default
    except (OSError, yaml.YAMLError):
        if raise_on_error:
            raise
        return default


def read_json(path: Path, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read a JSON file with the same contract as :func:`read_yaml`."""
    path = Path(path)
    if not path.exists():
        if raise_on_error:
            raise FileNotFoundError(f"File not found: {path}")
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        if raise_on_error:
            raise
        return default


def read_structured(path: Path, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read a ``.json`` file as JSON and anything else as YAML."""
    if Path(path).suffix.lower() == ".json":
        return read_json(path, default=default, raise_on_error=raise_on_error)
    return read_yaml(path, default=default, raise_on_error=raise_on_error)


def iter_yaml_files(directory: Path) -> Iterator[Path]:
    """Yield ``*.yaml`` / ``*.yml`` files in ``directory`` in alphabetical order."""
    if not directory.is_dir():
        return
    files = [p for p in directory.iterdir() if p.suffix in {".yaml", ".yml"} and p.is_file()]
    yield from sorted(files, key=lambda p: p.name)


__all__ = ["read_yaml", "read_json", "read_structured", "iter_yaml_files"]
