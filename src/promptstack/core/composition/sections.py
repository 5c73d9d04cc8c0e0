"""Loading and validating section lists."""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import yaml

from promptstack.core.exceptions import SectionConfigError
from promptstack.core.schemas.validation import validate_payload_safe
from promptstack.core.utils.io import read_structured
from promptstack.data import read_yaml as read_bundled_yaml

from .types import SectionDefinition

logger = logging.getLogger(__name__)

SECTIONS_SCHEMA = "sections"


def parse_sections(
    payload: Any,
    *,
    source: str = "<inline>",
    repo_root: Optional[Path] = None,
) -> List[SectionDefinition]:
    """Validate a raw section payload and return definitions.

    Accepts either ``{"sections": [...]}`` or a bare list.

    Raises:
        SectionConfigError: If the payload does not match the section schema.
    """
    if isinstance(payload, list):
        payload = {"sections": payload}
    if not isinstance(payload, Mapping):
        raise SectionConfigError(
            f"Section list in {source} must be a mapping or a list, got {type(payload).__name__}",
            context={"source": source},
        )
    errors = validate_payload_safe(payload, SECTIONS_SCHEMA, repo_root=repo_root)
    if errors:
        raise SectionConfigError(
            f"Invalid section list in {source}: {'; '.join(errors[:5])}",
            context={"source": source, "errors": errors},
        )
    return [SectionDefinition.from_dict(raw) for raw in payload["sections"]]


def load_sections(path: Path, *, repo_root: Optional[Path] = None) -> List[SectionDefinition]:
    """Read a YAML or JSON section file."""
    path = Path(path)
    try:
        payload = read_structured(path, raise_on_error=True)
    except FileNotFoundError as exc:
        raise SectionConfigError(f"Section file not found: {path}", context={"source": str(path)}) from exc
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SectionConfigError(f"Cannot parse section file {path}: {exc}", context={"source": str(path)}) from exc
    sections = parse_sections(payload, source=str(path), repo_root=repo_root)
    logger.debug("Loaded %d sections from %s", len(sections), path)
    return sections


def default_sections() -> List[SectionDefinition]:
    """The bundled reference section list."""
    payload = copy.deepcopy(read_bundled_yaml("sections", "default.yaml"))
    return parse_sections(payload, source="promptstack/data/sections/default.yaml")


def sections_or_default(sections: Optional[Sequence[Any]]) -> List[SectionDefinition]:
    if not sections:
        return default_sections()
    return [s if isinstance(s, SectionDefinition) else SectionDefinition.from_dict(s) for s in sections]


__all__ = ["default_sections", "load_sections", "parse_sections", "sections_or_default"]
