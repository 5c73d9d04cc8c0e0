"""Small helpers shared by the built-in transforms."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..shared_state import DEFAULT_THRESHOLDS
from ..types import MISSING, classify_value


def thresholds_of(context: Any) -> Dict[str, float]:
    merged = dict(DEFAULT_THRESHOLDS)
    merged.update(context.shared_state.get("thresholds") or {})
    return merged


def classify(value: Optional[float], context: Any) -> Optional[str]:
    return classify_value(value, thresholds_of(context))


def spec_config(spec: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return dict((spec or {}).get("config") or {})


def as_records(value: Any) -> List[Mapping[str, Any]]:
    """The mappings in a list, treating anything else (None, MISSING, scalars) as empty."""
    if value is MISSING or not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, Mapping)]


def section_mapping(context: Any, key: str) -> Mapping[str, Any]:
    """Output stored under ``key`` when it is a mapping, else an empty one."""
    value = context.sections.get(key)
    return value if isinstance(value, Mapping) else {}


def pct(value: Optional[float]) -> int:
    return int(round((value or 0) * 100))


def find_target(targets: List[Mapping[str, Any]], parameter_id: str) -> Optional[Mapping[str, Any]]:
    for target in targets:
        if target.get("parameterId") == parameter_id:
            return target
    return None


def current_module(context: Any) -> Optional[Mapping[str, Any]]:
    return context.shared_state.get("next_module") or context.shared_state.get("module_to_review")


__all__ = [
    "as_records",
    "classify",
    "current_module",
    "find_target",
    "pct",
    "section_mapping",
    "spec_config",
    "thresholds_of",
]
