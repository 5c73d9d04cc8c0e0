"""Base classes for template transformers.

A template is rendered by running it through a fixed pipeline of
transformers, each handling one category of directive.

Transformation Order (7 steps):
1. SECTION BLOCKS - {{#name}}...{{/name}}
2. CONDITIONALS   - {{#if path}}...{{/if}}
3. INVERSE        - {{#unless path}}...{{/unless}}
4. LOOPS          - {{#each path}}...{{/each}}
5. VARIABLES      - {{dot.path}}
6. CLEANUP        - delete leftover {{...}} tokens
7. WHITESPACE     - collapse blank-line runs, trim
"""
from __future__ import annotations

import json
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Set

# Dot-separated identifier path, e.g. ``param.highLabel``.
PATH = r"\w+(?:\.\w+)*"


def resolve_path(data: Any, path: str) -> Any:
    """Walk ``path`` through nested mappings (and list indices).

    Returns None as soon as a segment cannot be followed.

    Example:
        >>> resolve_path({"a": {"b": [10, 20]}}, "a.b.1")
        20
    """
    current = data
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def is_truthy(value: Any) -> bool:
    """Truthiness used by every block directive.

    None is false; booleans are themselves; numbers are truthy when nonzero;
    strings, lists and mappings when non-empty; anything else is true.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, list, tuple, Mapping)):
        return len(value) > 0
    return True


def to_json_text(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def stringify(value: Any) -> str:
    """Render a resolved value as template text.

    None renders empty, booleans as ``true``/``false``, whole floats without
    a trailing ``.0``, mappings and lists as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (Mapping, list, tuple)):
        return to_json_text(value)
    return str(value)


@dataclass
class TemplateContext:
    """Per-render state: the data record plus tracking for reports.

    Created for a single render call and discarded afterwards.
    """

    data: Mapping[str, Any] = field(default_factory=dict)

    variables_resolved: Set[str] = field(default_factory=set)
    variables_missing: Set[str] = field(default_factory=set)
    blocks_expanded: int = 0
    blocks_dropped: int = 0

    def lookup(self, path: str) -> Any:
        return resolve_path(self.data, path)

    def record_variable(self, name: str, resolved: bool) -> None:
        if resolved:
            self.variables_resolved.add(name)
        else:
            self.variables_missing.add(name)

    def record_block(self, kept: bool) -> None:
        if kept:
            self.blocks_expanded += 1
        else:
            self.blocks_dropped += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variablesResolved": sorted(self.variables_resolved),
            "variablesMissing": sorted(self.variables_missing),
            "blocksExpanded": self.blocks_expanded,
            "blocksDropped": self.blocks_dropped,
        }


class TemplateTransformer(ABC):
    """One pipeline step. Transformers hold no per-render state."""

    @abstractmethod
    def transform(self, content: str, context: TemplateContext) -> str:
        ...

    def get_name(self) -> str:
        return self.__class__.__name__


class TemplatePipeline:
    """Run transformers in order over a template string."""

    def __init__(self, transformers: List[TemplateTransformer]) -> None:
        self.transformers = list(transformers)

    def execute(self, content: str, context: TemplateContext) -> str:
        result = content
        for transformer in self.transformers:
            result = transformer.transform(result, context)
        return result


def compile_directive(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.DOTALL | re.ASCII)


__all__ = [
    "PATH",
    "TemplateContext",
    "TemplatePipeline",
    "TemplateTransformer",
    "compile_directive",
    "is_truthy",
    "resolve_path",
    "stringify",
    "to_json_text",
]
