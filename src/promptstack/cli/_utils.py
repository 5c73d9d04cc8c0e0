"""Shared CLI utility functions."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, List, Mapping, Optional

from promptstack.core.composition.sections import load_sections
from promptstack.core.composition.types import SectionDefinition
from promptstack.core.utils.io import read_structured
from promptstack.core.utils.paths import resolve_project_root


def get_repo_root(args: argparse.Namespace) -> Path:
    """Project root from ``--repo-root`` or auto-detection."""
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()
    return resolve_project_root()


def configure_logging(repo_root: Optional[Path]) -> None:
    """Install the configured log handler for this invocation."""
    from promptstack.core.config.domains import LoggingConfig
    from promptstack.core.stdlib_logging import configure_stdlib_logging

    cfg = LoggingConfig(repo_root)
    configure_stdlib_logging(level=cfg.level, log_path=cfg.path, fmt=cfg.format)


def resolve_sections(args: argparse.Namespace, repo_root: Optional[Path]) -> Optional[List[SectionDefinition]]:
    """Sections from ``--sections``; ``None`` lets the executor fall back."""
    path = getattr(args, "sections", None)
    if not path:
        return None
    return load_sections(Path(path), repo_root=repo_root)


def effective_sections(args: argparse.Namespace, repo_root: Optional[Path]) -> List[SectionDefinition]:
    """``--sections``, else ``composition.sectionsFile``, else the bundled list."""
    from promptstack.core.composition.executor import CompositionExecutor

    return CompositionExecutor.from_config(repo_root, sections=resolve_sections(args, repo_root)).sections


def read_json_arg(value: Optional[str]) -> Mapping[str, Any]:
    """Read a data argument: ``@file`` (YAML/JSON) or an inline JSON object."""
    import json

    if not value:
        return {}
    if value.startswith("@"):
        payload = read_structured(Path(value[1:]), raise_on_error=True)
    else:
        payload = json.loads(value)
    if not isinstance(payload, Mapping):
        raise ValueError("Data must be a JSON/YAML object")
    return payload


__all__ = ["configure_logging", "effective_sections", "get_repo_root", "read_json_arg", "resolve_sections"]
