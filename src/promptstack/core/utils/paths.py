"""Project root and project config directory resolution.

Resolution priority:
1. ``PROMPTSTACK_PROJECT_ROOT`` environment variable
2. Nearest ancestor of the working directory that contains ``.promptstack/``
3. The working directory itself
"""
from __future__ import annotations

import os
from pathlib import Path

from promptstack.core.exceptions import ConfigError

PROJECT_ROOT_ENV = "PROMPTSTACK_PROJECT_ROOT"
PROJECT_CONFIG_DIRNAME = ".promptstack"


def resolve_project_root() -> Path:
    env_root = os.environ.get(PROJECT_ROOT_ENV)
    if env_root:
        path = Path(env_root).expanduser().resolve()
        if not path.exists():
            raise ConfigError(f"{PROJECT_ROOT_ENV} points at missing path: {path}")
        if path.name == PROJECT_CONFIG_DIRNAME:
            raise ConfigError(
                f"{PROJECT_ROOT_ENV} points at {PROJECT_CONFIG_DIRNAME}/ itself; "
                "it must point at the project root"
            )
        return path

    cwd = Path.cwd().resolve()
    for candidate in (cwd, *cwd.parents):
        if (candidate / PROJECT_CONFIG_DIRNAME).is_dir():
            return candidate
    return cwd


def get_project_config_dir(repo_root: Path) -> Path:
    """Return ``<repo_root>/.promptstack/config`` (not created)."""
    return Path(repo_root) / PROJECT_CONFIG_DIRNAME / "config"


__all__ = [
    "PROJECT_ROOT_ENV",
    "PROJECT_CONFIG_DIRNAME",
    "resolve_project_root",
    "get_project_config_dir",
]
