"""Run-level state computed once before any section runs.

Curriculum modules come from, in order of preference:

1. content spec parameters selected by ``metadata.curriculum.moduleSelector``
   (e.g. ``section=content``)
2. a direct ``modules`` / ``curriculum.modules`` list on the content spec
3. the first subject curriculum carrying ``notableInfo.modules``

Progress, the module to review, the next module and the review intensity
are all derived from the subject's attributes and call history.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .types import ResolvedSpecs, get_attribute_value

logger = logging.getLogger(__name__)

DEFAULT_MASTERY_THRESHOLD = 0.7
DEFAULT_REVIEW_SCHEDULE = {"reintroduce": 14, "deepReview": 7, "application": 3}
DEFAULT_THRESHOLDS = {"high": 0.65, "low": 0.35}


def extract_curriculum_metadata(content_spec: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    config = (content_spec or {}).get("config")
    if not config:
        return None
    meta = (config.get("metadata") or {}).get("curriculum")
    if not meta:
        return None
    threshold = meta.get("masteryThreshold")
    return {
        "type": meta.get("type") or "sequential",
        "trackingMode": meta.get("trackingMode") or "module-based",
        "moduleSelector": meta.get("moduleSelector") or "section=content",
        "moduleOrder": meta.get("moduleOrder") or "sortBySequence",
        "progressKey": meta.get("progressKey") or "current_module",
        "masteryThreshold": threshold if threshold is not None else DEFAULT_MASTERY_THRESHOLD,
    }


def _first_not_none(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def sort_modules(modules: List[Dict[str, Any]], order_rule: str) -> List[Dict[str, Any]]:
    if order_rule == "explicit":
        return modules
    if order_rule == "sortBySectionThenId":
        return sorted(modules, key=lambda m: str(m.get("id") or ""))
    return sorted(modules, key=lambda m: m.get("sequence") or 0)


def extract_parameter_modules(content_spec: Mapping[str, Any], metadata: Mapping[str, Any]) -> List[Dict[str, Any]]:
    config = content_spec.get("config") or {}
    selector_key, _, selector_value = str(metadata["moduleSelector"]).partition("=")
    if not selector_key or not selector_value:
        logger.warning("Invalid moduleSelector format: %s", metadata["moduleSelector"])
        return []

    modules = []
    selected = [p for p in config.get("parameters") or [] if p.get(selector_key) == selector_value]
    for index, param in enumerate(selected):
        param_config = param.get("config") or {}
        sequence = _first_not_none(param.get("sequence"), param_config.get("sequence"), index)
        modules.append({
            "id": param.get("id"),
            "slug": param.get("id"),
            "name": param.get("name") or param_config.get("chapterTitle") or param.get("id"),
            "description": param.get("description") or param_config.get("description") or "",
            "content": param_config,
            "sequence": sequence,
            "sortOrder": sequence,
            "prerequisites": param_config.get("prerequisites") or [],
            "masteryThreshold": metadata["masteryThreshold"],
        })
    return sort_modules(modules, str(metadata.get("moduleOrder") or ""))


def extract_legacy_modules(content_spec: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    config = (content_spec or {}).get("config")
    if not config:
        return []
    raw_modules = config.get("modules") or (config.get("curriculum") or {}).get("modules") or []
    modules = []
    for index, raw in enumerate(raw_modules):
        modules.append({
            "id": raw.get("id") or raw.get("slug"),
            "slug": raw.get("slug") or raw.get("id"),
            "name": raw.get("name") or raw.get("title"),
            "description": raw.get("description") or "",
            "content": raw.get("content") or raw,
            "sequence": _first_not_none(raw.get("sequence"), raw.get("sortOrder"), index),
            "sortOrder": _first_not_none(raw.get("sortOrder"), raw.get("sequence"), index),
            "prerequisites": raw.get("prerequisites") or [],
            "masteryThreshold": _first_not_none(raw.get("masteryThreshold"), DEFAULT_MASTERY_THRESHOLD),
        })
    return modules


def extract_modules(content_spec: Optional[Mapping[str, Any]]) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
    metadata = extract_curriculum_metadata(content_spec)
    if metadata and content_spec:
        modules = extract_parameter_modules(content_spec, metadata)
        if modules:
            logger.debug("Found %d modules via selector '%s'", len(modules), metadata["moduleSelector"])
            return modules, metadata
    return extract_legacy_modules(content_spec), metadata


def iter_subject_curricula(loaded_data: Mapping[str, Any]) -> List[Tuple[Mapping[str, Any], Mapping[str, Any]]]:
    """(subject, curriculum) pairs for every subject that has a curriculum."""
    subjects = ((loaded_data.get("subjectSources") or {}).get("subjects")) or []
    return [(s, s["curriculum"]) for s in subjects if s.get("curriculum")]


def extract_subject_modules(loaded_data: Mapping[str, Any]) -> Optional[Tuple[List[Dict[str, Any]], str]]:
    for _subject, curriculum in iter_subject_curricula(loaded_data):
        raw_modules = (curriculum.get("notableInfo") or {}).get("modules")
        if not isinstance(raw_modules, list) or not raw_modules:
            continue
        modules = []
        for index, raw in enumerate(raw_modules):
            sort_order = _first_not_none(raw.get("sortOrder"), index)
            modules.append({
                "id": raw.get("id"),
                "slug": raw.get("id"),
                "name": raw.get("title") or raw.get("name") or raw.get("id"),
                "description": raw.get("description") or "",
                "content": raw,
                "sequence": sort_order,
                "sortOrder": sort_order,
                "prerequisites": [],
                "learningOutcomes": raw.get("learningOutcomes") or [],
                "assessmentCriteria": raw.get("assessmentCriteria") or [],
                "keyTerms": raw.get("keyTerms") or [],
                "masteryThreshold": DEFAULT_MASTERY_THRESHOLD,
            })
        return modules, str(curriculum.get("slug") or "")
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def module_key(module: Mapping[str, Any]) -> str:
    return str(module.get("slug") or module.get("id") or "")


def find_completed_modules(
    attributes: List[Mapping[str, Any]],
    *,
    spec_slug: str,
    metadata: Optional[Mapping[str, Any]],
    mastery_threshold: float,
) -> Set[str]:
    prefix = f"curriculum:{spec_slug}:mastery:" if metadata and metadata.get("progressKey") else ""
    completed: Set[str] = set()
    for attr in attributes:
        key = str(attr.get("key") or "")
        if not ("mastery_" in key or "completed_" in key or (prefix and key.startswith(prefix))):
            continue
        value = get_attribute_value(attr)
        is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
        if value is True or (is_number and value >= mastery_threshold):
            module_id = key.replace("mastery_", "", 1).replace("completed_", "", 1)
            if prefix:
                module_id = module_id.replace(prefix, "", 1)
            completed.add(module_id)
    return completed


def review_for_gap(days: int, schedule: Mapping[str, Any]) -> Tuple[str, str]:
    if days >= schedule.get("reintroduce", 14):
        return "reintroduce", f"{days} days since last session - rebuild understanding"
    if days >= schedule.get("deepReview", 7):
        return "deep_review", f"{days} days gap - full review with new example"
    if days >= schedule.get("application", 3):
        return "application", f"{days} days gap - application question to check retention"
    return "quick_recall", "Brief recall to activate prior knowledge"


def _lesson_plan(
    loaded_data: Mapping[str, Any],
    attributes: List[Mapping[str, Any]],
) -> Tuple[Optional[Dict[str, Any]], Optional[int]]:
    for _subject, curriculum in iter_subject_curricula(loaded_data):
        plan = ((curriculum.get("deliveryConfig") or {}).get("lessonPlan")) or {}
        entries = plan.get("entries") or []
        if not entries:
            continue
        session_key = f"curriculum:{curriculum.get('slug')}:current_session"
        session_number = None
        for attr in attributes:
            if attr.get("key") == session_key:
                value = get_attribute_value(attr)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    session_number = int(value)
                break
        if session_number is None:
            return None, None
        for entry in entries:
            if entry.get("session") == session_number:
                return dict(entry), session_number
        return None, session_number
    return None, None


def compute_shared_state(
    loaded_data: Mapping[str, Any],
    resolved_specs: ResolvedSpecs,
    spec_config: Optional[Mapping[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    spec_config = spec_config or {}
    content_spec = resolved_specs.content
    modules, metadata = extract_modules(content_spec)
    spec_slug = str((content_spec or {}).get("slug") or "")

    if not modules:
        subject_result = extract_subject_modules(loaded_data)
        if subject_result and subject_result[0]:
            modules, spec_slug = subject_result
            if not metadata:
                metadata = {
                    "type": "sequential",
                    "trackingMode": "module-based",
                    "moduleSelector": "subject-curriculum",
                    "moduleOrder": "sortBySequence",
                    "progressKey": "current_module",
                    "masteryThreshold": DEFAULT_MASTERY_THRESHOLD,
                }
            logger.debug("Subject curriculum fallback: %d modules from '%s'", len(modules), spec_slug)

    mastery_threshold = (metadata or {}).get("masteryThreshold", DEFAULT_MASTERY_THRESHOLD)
    recent_calls = list(loaded_data.get("recentCalls") or [])
    attributes = list(loaded_data.get("callerAttributes") or [])

    onboarding = loaded_data.get("onboardingSession")
    is_first_call = not recent_calls
    is_first_call_in_domain = not onboarding or not onboarding.get("isComplete")

    days_since_last_call = 0
    if recent_calls:
        last = parse_timestamp(recent_calls[0].get("createdAt"))
        if last is not None:
            current = now or datetime.now(timezone.utc)
            if current.tzinfo is None:
                current = current.replace(tzinfo=timezone.utc)
            days_since_last_call = (current - last).days

    completed = find_completed_modules(
        attributes,
        spec_slug=spec_slug,
        metadata=metadata,
        mastery_threshold=mastery_threshold,
    )

    if completed:
        estimated_progress = len(completed)
        last_completed_index = max(
            [i for i, m in enumerate(modules) if module_key(m) in completed],
            default=-1,
        )
    else:
        estimated_progress = min(len(recent_calls) // 2, len(modules) - 1)
        last_completed_index = max(0, estimated_progress - 1)

    if 0 <= last_completed_index < len(modules):
        module_to_review: Optional[Dict[str, Any]] = modules[last_completed_index]
    else:
        module_to_review = modules[0] if modules else None
    next_index = last_completed_index + 1
    next_module = modules[next_index] if 0 <= next_index < len(modules) else None

    schedule = spec_config.get("reviewSchedule") or DEFAULT_REVIEW_SCHEDULE
    review_type, review_reason = review_for_gap(days_since_last_call, schedule)

    lesson_plan_entry = None
    current_session_number = None
    if onboarding and onboarding.get("isComplete"):
        lesson_plan_entry, current_session_number = _lesson_plan(loaded_data, attributes)
        if lesson_plan_entry and lesson_plan_entry.get("moduleId"):
            planned = next((m for m in modules if m.get("id") == lesson_plan_entry["moduleId"]), None)
            if planned is not None:
                next_module = planned

    return {
        "modules": modules,
        "is_first_call": is_first_call,
        "is_first_call_in_domain": is_first_call_in_domain,
        "days_since_last_call": days_since_last_call,
        "completed_modules": completed,
        "estimated_progress": estimated_progress,
        "last_completed_index": last_completed_index,
        "module_to_review": module_to_review,
        "next_module": next_module,
        "review_type": review_type,
        "review_reason": review_reason,
        "thresholds": dict(spec_config.get("thresholds") or DEFAULT_THRESHOLDS),
        "curriculum_metadata": metadata,
        "curriculum_spec_slug": spec_slug or None,
        "lesson_plan_entry": lesson_plan_entry,
        "lesson_plan_session_type": lesson_plan_entry.get("type") if lesson_plan_entry else None,
        "current_session_number": current_session_number if lesson_plan_entry else None,
    }


__all__ = [
    "DEFAULT_REVIEW_SCHEDULE",
    "DEFAULT_THRESHOLDS",
    "compute_shared_state",
    "extract_curriculum_metadata",
    "extract_modules",
    "find_completed_modules",
    "module_key",
    "parse_timestamp",
    "review_for_gap",
]
