"""Approved teaching points for the current module."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Set

from .common import as_records, current_module
from .registry import register_transform

HIGH_EXAM_RELEVANCE = 0.7


def outcome_codes(learning_outcomes: List[Any]) -> Set[str]:
    """``"LO2-AC2.1: List hazards"`` -> ``{"LO2", "AC2.1"}``."""
    codes: Set[str] = set()
    for outcome in learning_outcomes:
        code = str(outcome).split(":", 1)[0].strip()
        codes.update(part for part in code.split("-") if part)
    return codes


def matches_outcomes(assertion: Mapping[str, Any], codes: Set[str]) -> bool:
    ref = assertion.get("learningOutcomeRef")
    if not ref:
        return False
    return any(part in codes for part in str(ref).split("-"))


def select_assertions(assertions: List[Mapping[str, Any]], module: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    if not module:
        return assertions
    codes = outcome_codes(module.get("learningOutcomes") or [])
    if not codes:
        return assertions
    matched = [a for a in assertions if matches_outcomes(a, codes)]
    return matched or assertions


def format_point(assertion: Mapping[str, Any]) -> str:
    line = f"- {assertion.get('assertion')}"
    citation = ", ".join(str(p) for p in (assertion.get("sourceName"), assertion.get("pageRef")) if p)
    if citation:
        line += f" [{citation}]"
    if assertion.get("learningOutcomeRef"):
        line += f" ({assertion['learningOutcomeRef']})"
    return line


def render_points(assertions: List[Mapping[str, Any]]) -> str:
    groups: Dict[str, List[Mapping[str, Any]]] = {}
    for assertion in assertions:
        groups.setdefault(str(assertion.get("category") or "general"), []).append(assertion)
    blocks = []
    for category, items in groups.items():
        blocks.append("\n".join([f"{category.upper()}:"] + [format_point(a) for a in items]))
    return "\n\n".join(blocks)


@register_transform("renderTeachingContent")
def render_teaching_content(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    source = raw if isinstance(raw, list) else context.loaded_data.get("curriculumAssertions")
    module = current_module(context)
    selected = select_assertions(as_records(source), module)

    categories: Dict[str, int] = {}
    sources: List[str] = []
    for assertion in selected:
        category = str(assertion.get("category") or "general")
        categories[category] = categories.get(category, 0) + 1
        name = assertion.get("sourceName")
        if name and name not in sources:
            sources.append(name)

    return {
        "hasTeachingContent": bool(selected),
        "totalAssertions": len(selected),
        "teachingPoints": render_points(selected) if selected else None,
        "categories": categories,
        "sources": sources,
        "highExamRelevanceCount": sum(
            1 for a in selected if (a.get("examRelevance") or 0) > HIGH_EXAM_RELEVANCE
        ),
        "currentModule": {
            "id": module.get("id"),
            "name": module.get("name"),
            "learningOutcomes": module.get("learningOutcomes") or [],
        } if module else None,
    }


__all__ = ["outcome_codes", "render_teaching_content", "select_assertions"]
