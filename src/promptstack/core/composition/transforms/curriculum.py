"""Curriculum progress section, built from the run's shared module state."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from ..shared_state import DEFAULT_MASTERY_THRESHOLD, module_key
from ..types import get_attribute_value
from .common import as_records, spec_config
from .registry import register_transform

CURRICULUM_KEY_MARKERS = ("module", "curriculum", "mastery", "comprehension", "progress")
NEXT_CONTENT_MARKERS = ("next_", "ready_for", "prerequisite")


def is_curriculum_attribute(attr: Mapping[str, Any]) -> bool:
    key = str(attr.get("key") or "")
    return any(m in key for m in CURRICULUM_KEY_MARKERS) or "CURR" in str(attr.get("sourceSpecSlug") or "")


def is_next_content_attribute(attr: Mapping[str, Any]) -> bool:
    key = str(attr.get("key") or "")
    return any(m in key for m in NEXT_CONTENT_MARKERS)


def module_status(module: Mapping[str, Any], index: int, *, completed: set, last_index: int, call_count: int) -> str:
    if module_key(module) in completed:
        return "completed"
    if index <= last_index and call_count > 0:
        return "in_progress"
    return "not_started"


def curriculum_name(context: Any) -> Any:
    content = context.resolved_specs.content
    config = spec_config(content)
    return (
        ((config.get("metadata") or {}).get("curriculum") or {}).get("name")
        or (config.get("curriculum") or {}).get("name")
        or (content or {}).get("name")
    )


@register_transform("computeModuleProgress")
def compute_module_progress(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    state = context.shared_state
    modules: List[Dict[str, Any]] = state.get("modules") or []
    completed = set(state.get("completed_modules") or ())
    estimated = state.get("estimated_progress") or 0
    last_index = state.get("last_completed_index", -1)
    next_module = state.get("next_module")
    call_count = context.loaded_data.get("callCount") or 0
    threshold = (state.get("curriculum_metadata") or {}).get("masteryThreshold", DEFAULT_MASTERY_THRESHOLD)

    attributes = as_records(context.loaded_data.get("callerAttributes"))
    curriculum_attrs = [a for a in attributes if is_curriculum_attribute(a)]
    next_attrs = [a for a in attributes if is_next_content_attribute(a)]

    completed_list = sorted(completed)
    covered = completed_list or [module_key(m) for m in modules[:max(0, estimated)]]

    return {
        "name": curriculum_name(context),
        "hasData": bool(curriculum_attrs) or bool(modules),
        "totalModules": len(modules),
        "completedModules": completed_list,
        "coveredModules": covered,
        "completedCount": len(completed),
        "estimatedProgress": estimated,
        "masteryThreshold": threshold,
        "modules": [
            {
                "id": m.get("id"),
                "slug": m.get("slug"),
                "name": m.get("name"),
                "description": m.get("description"),
                "order": m.get("sortOrder"),
                "prerequisites": m.get("prerequisites") or [],
                "masteryThreshold": m.get("masteryThreshold"),
                "isCompleted": module_key(m) in completed,
                "status": module_status(m, i, completed=completed, last_index=last_index, call_count=call_count),
                "content": m.get("content"),
            }
            for i, m in enumerate(modules)
        ],
        "nextModule": {
            "id": next_module.get("id"),
            "slug": next_module.get("slug"),
            "name": next_module.get("name"),
            "description": next_module.get("description"),
            "content": next_module.get("content"),
        } if next_module else None,
        "currentProgress": [
            {
                "key": a.get("key"),
                "value": get_attribute_value(a),
                "confidence": a.get("confidence"),
                "source": a.get("sourceSpecSlug"),
            }
            for a in curriculum_attrs
        ],
        "nextContent": [{"key": a.get("key"), "value": get_attribute_value(a)} for a in next_attrs],
    }


__all__ = [
    "compute_module_progress",
    "curriculum_name",
    "is_curriculum_attribute",
    "is_next_content_attribute",
    "module_status",
]
