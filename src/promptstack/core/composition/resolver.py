"""Dependency ordering and pre-flight checks for section lists."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from ..exceptions import SectionConfigError
from .activation import is_known_condition
from .types import SectionDefinition, ensure_sections


def resolve_order(sections: Sequence[SectionDefinition]) -> List[SectionDefinition]:
    """Return ``sections`` so every dependency precedes its dependents.

    Depth-first in input order. Unknown dependency ids are ignored and a
    node already visited is never visited again, so cycles terminate
    without being reported. ``priority`` plays no part.
    """
    by_id: Dict[str, SectionDefinition] = {}
    for section in sections:
        by_id.setdefault(section.id, section)

    ordered: List[SectionDefinition] = []
    visited: Set[str] = set()

    def visit(section: SectionDefinition) -> None:
        if section.id in visited:
            return
        visited.add(section.id)
        for dep_id in section.depends_on:
            dep = by_id.get(dep_id)
            if dep is not None:
                visit(dep)
        ordered.append(section)

    for section in sections:
        visit(section)
    return ordered


@dataclass(frozen=True)
class GraphIssue:
    code: str
    severity: str  # warning | error
    message: str
    section: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
            "section": self.section,
        }


@dataclass
class SectionGraphReport:
    section_count: int = 0
    issues: List[GraphIssue] = field(default_factory=list)

    @property
    def errors(self) -> List[GraphIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> List[GraphIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, code: str, severity: str, message: str, section: Optional[str] = None) -> None:
        self.issues.append(GraphIssue(code, severity, message, section))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "sectionCount": self.section_count,
            "errorCount": len(self.errors),
            "warningCount": len(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
        }

    def raise_for_errors(self) -> None:
        if self.ok:
            return
        lines = "; ".join(i.message for i in self.errors[:5])
        raise SectionConfigError(
            f"Section graph has {len(self.errors)} error(s): {lines}",
            context={"issues": [i.to_dict() for i in self.errors]},
        )


def validate_section_graph(
    sections: Sequence[Any],
    *,
    registry: Any = None,
) -> SectionGraphReport:
    """Check a section list before running it.

    Errors: duplicate ids, dangling ``dependsOn`` ids, dependency cycles,
    unknown transform names. Warnings: duplicate output keys, unknown
    activation tags.
    """
    if registry is None:
        from .transforms import default_registry as registry

    defs = ensure_sections(sections)
    report = SectionGraphReport(section_count=len(defs))

    by_id: Dict[str, SectionDefinition] = {}
    for section in defs:
        if section.id in by_id:
            report.add("duplicate-id", "error", f"Duplicate section id '{section.id}'", section.id)
            continue
        by_id[section.id] = section

    output_owner: Dict[str, str] = {}
    for section in defs:
        for dep_id in section.depends_on:
            if dep_id not in by_id:
                report.add(
                    "dangling-dependency",
                    "error",
                    f"Section '{section.id}' depends on unknown section '{dep_id}'",
                    section.id,
                )

        owner = output_owner.get(section.output_key)
        if owner is not None and owner != section.id:
            report.add(
                "duplicate-output-key",
                "warning",
                f"Sections '{owner}' and '{section.id}' both write '{section.output_key}'",
                section.id,
            )
        else:
            output_owner[section.output_key] = section.id

        for name in section.transform:
            if name not in registry:
                report.add("unknown-transform", "error", f"Section '{section.id}' uses unknown transform '{name}'", section.id)

        if not is_known_condition(section.condition):
            report.add(
                "unknown-condition",
                "warning",
                f"Section '{section.id}' uses unknown activation condition '{section.condition}'",
                section.id,
            )

    for cycle in find_cycles(by_id):
        report.add("cycle", "error", "Dependency cycle: " + " -> ".join(cycle), cycle[0])

    return report


def find_cycles(by_id: Dict[str, SectionDefinition]) -> List[List[str]]:
    """Return each dependency cycle once, as the path that closes it."""
    WHITE, GREY, BLACK = 0, 1, 2
    color = {sid: WHITE for sid in by_id}
    stack: List[str] = []
    cycles: List[List[str]] = []

    def visit(sid: str) -> None:
        color[sid] = GREY
        stack.append(sid)
        for dep in by_id[sid].depends_on:
            if dep not in by_id:
                continue
            if color[dep] == GREY:
                start = stack.index(dep)
                cycles.append(stack[start:] + [dep])
            elif color[dep] == WHITE:
                visit(dep)
        stack.pop()
        color[sid] = BLACK

    for sid in by_id:
        if color[sid] == WHITE:
            visit(sid)
    return cycles


__all__ = [
    "GraphIssue",
    "SectionGraphReport",
    "find_cycles",
    "resolve_order",
    "validate_section_graph",
]
