"""Schema validation for section lists and configuration.

Schemas are JSON Schema (draft 2020-12) documents written in YAML and
bundled under ``promptstack/data/schemas``. A project may shadow any of them
by placing a file with the same name in ``.promptstack/schemas/``.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft202012Validator

from promptstack.core.exceptions import PromptStackError
from promptstack.core.utils.io import read_yaml
from promptstack.core.utils.paths import PROJECT_CONFIG_DIRNAME
from promptstack.data import get_data_path


class SchemaValidationError(PromptStackError, ValueError):
    """Raised when a payload does not satisfy its schema."""

    def __init__(self, message: str = "", *, errors: Optional[List[str]] = None) -> None:
        PromptStackError.__init__(self, message, context={"errors": list(errors or [])})
        ValueError.__init__(self, message)
        self.errors = list(errors or [])


def _iter_schema_dirs(repo_root: Optional[Path] = None) -> List[Path]:
    """Return schema search roots in priority order."""
    roots: List[Path] = []
    if repo_root is not None:
        roots.append(Path(repo_root) / PROJECT_CONFIG_DIRNAME / "schemas")
    roots.append(get_data_path("schemas"))
    return roots


def load_schema(schema_name: str, *, repo_root: Optional[Path] = None) -> Dict[str, Any]:
    """Load a schema dict by file name.

    Appends ``.schema.yaml`` when ``schema_name`` has no extension, so
    ``load_schema("sections")`` and ``load_schema("sections.schema.yaml")``
    are equivalent.

    Raises:
        FileNotFoundError: If no search root holds the schema.
        ValueError: If the schema file is not a YAML mapping.
    """
    if not schema_name.lower().endswith((".yaml", ".yml")):
        schema_name = f"{schema_name}.schema.yaml"

    for schemas_dir in _iter_schema_dirs(repo_root):
        candidate = schemas_dir / schema_name
        if candidate.exists():
            schema = read_yaml(candidate, default=None, raise_on_error=True)
            if not isinstance(schema, dict):
                raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
            return schema

    searched = "\n".join(f"- {p}" for p in _iter_schema_dirs(repo_root))
    raise FileNotFoundError(f"Schema not found: {schema_name}\nSearched:\n{searched}")


def validate_payload_safe(
    payload: Mapping[str, Any],
    schema_name: str,
    *,
    repo_root: Optional[Path] = None,
) -> List[str]:
    """Validate a payload and return readable error messages (empty if valid).

    Each message is prefixed with the dotted path of the offending value.
    """
    schema = load_schema(schema_name, repo_root=repo_root)
    validator = Draft202012Validator(schema)
    errors: List[str] = []
    for error in sorted(validator.iter_errors(payload), key=lambda e: [str(p) for p in e.path]):
        if error.path:
            path_str = ".".join(str(p) for p in error.path)
            errors.append(f"{path_str}: {error.message}")
        else:
            errors.append(error.message)
    return errors


def validate_payload(
    payload: Mapping[str, Any],
    schema_name: str,
    *,
    repo_root: Optional[Path] = None,
) -> None:
    """Validate a payload, raising :class:`SchemaValidationError` on failure."""
    errors = validate_payload_safe(payload, schema_name, repo_root=repo_root)
    if errors:
        summary = "; ".join(errors[:5])
        more = f" (+{len(errors) - 5} more)" if len(errors) > 5 else ""
        raise SchemaValidationError(
            f"Validation failed against schema '{schema_name}': {summary}{more}",
            errors=errors,
        )


__all__ = [
    "SchemaValidationError",
    "load_schema",
    "validate_payload",
    "validate_payload_safe",
]
