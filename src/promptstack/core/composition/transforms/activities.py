"""Activity toolkit: recommend interactive activities for this session.

The catalogue comes from an activity spec among the system specs (slug
starting with ``ACTIVITY`` or a config carrying ``activity_catalog``).
Each activity is scored against the session phase and the learner's
mastery level; the best few are recommended with personality
adaptations attached.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .common import as_records, section_mapping, spec_config
from .registry import register_transform

PHASE_WEIGHT = 2
MASTERY_WEIGHT = 2
FIRST_CALL_ASSESSMENT_PENALTY = 3
DEFAULT_MAX_ACTIVITIES = 2

ADAPTATION_TRAITS = ("openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism")


def find_activity_spec(system_specs: List[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    for spec in system_specs:
        config = spec.get("config") or {}
        if str(spec.get("slug") or "").upper().startswith("ACTIVITY"):
            return spec
        if "activity_catalog" in config or isinstance(config.get("activities"), list):
            return spec
    return None


def _catalogue(config: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    catalog = config.get("activity_catalog")
    if isinstance(catalog, Mapping):
        return as_records(catalog.get("activities"))
    return as_records(config.get("activities"))


def _strategy(config: Mapping[str, Any]) -> Mapping[str, Any]:
    return config.get("selection_strategy") or config


def mastery_level(completed: int, total: int) -> str:
    if total <= 0 or completed <= 0:
        return "novice"
    ratio = completed / total
    if ratio < 0.5:
        return "developing"
    if ratio < 0.9:
        return "proficient"
    return "mastered"


def session_phases(state: Mapping[str, Any]) -> List[str]:
    if state.get("is_first_call"):
        return ["new_material"]
    phases = ["spaced_retrieval"]
    if state.get("next_module"):
        phases.append("new_material")
    return phases


def score_activity(
    activity: Mapping[str, Any],
    strategy: Mapping[str, Any],
    *,
    phases: List[str],
    mastery: str,
    is_first_call: bool,
) -> int:
    activity_id = activity.get("id")
    score = 0
    phase_recs = strategy.get("session_phase_recommendations") or {}
    for phase in phases:
        if activity_id in (phase_recs.get(phase) or []):
            score += PHASE_WEIGHT
    if activity_id in ((strategy.get("mastery_level_recommendations") or {}).get(mastery) or []):
        score += MASTERY_WEIGHT
    if is_first_call and activity.get("category") == "assessment":
        score -= FIRST_CALL_ASSESSMENT_PENALTY
    return score


def personality_adaptations(activity: Mapping[str, Any], personality: Optional[Mapping[str, Any]]) -> List[str]:
    table = activity.get("personality_adaptations") or {}
    traits = (personality or {}).get("traits")
    if not isinstance(traits, Mapping):
        return []
    notes = []
    for trait in ADAPTATION_TRAITS:
        entry = traits.get(trait)
        level = entry.get("level") if isinstance(entry, Mapping) else None
        if level not in ("HIGH", "LOW"):
            continue
        note = table.get(f"{level.lower()}_{trait}")
        if note:
            notes.append(note)
    return notes


def _recommendation(activity: Mapping[str, Any], score: int, adaptations: List[str], reason: str) -> Dict[str, Any]:
    fmt = activity.get("format") or {}
    triggers = activity.get("triggers") or {}
    rec = {
        "id": activity.get("id"),
        "name": activity.get("name"),
        "channel": activity.get("channel"),
        "category": activity.get("category"),
        "description": activity.get("description"),
        "reason": reason,
        "format_steps": fmt.get("steps") or [],
        "duration": fmt.get("duration"),
        "when": triggers.get("when") or [],
        "avoid_when": triggers.get("avoid_when") or [],
        "adaptations": adaptations,
        "score": score,
    }
    if activity.get("channel") == "text" and fmt.get("text_template"):
        rec["text_template"] = fmt["text_template"]
    return rec


def empty_toolkit() -> Dict[str, Any]:
    return {
        "hasActivities": False,
        "recommended": [],
        "all_available": [],
        "principles": [],
        "limits": None,
        "context_signals": None,
    }


@register_transform("computeActivityToolkit")
def compute_activity_toolkit(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    spec = find_activity_spec(as_records(context.loaded_data.get("systemSpecs")))
    if spec is None:
        return empty_toolkit()
    config = spec_config(spec)
    activities = _catalogue(config)
    if not activities:
        return empty_toolkit()

    strategy = _strategy(config)
    state = context.shared_state
    modules = state.get("modules") or []
    mastery = mastery_level(len(state.get("completed_modules") or ()), len(modules))
    phases = session_phases(state)
    is_first_call = bool(state.get("is_first_call"))
    personality = section_mapping(context, "personality")
    pedagogy = section_mapping(context, "instructions_pedagogy")

    scored = []
    for activity in activities:
        score = score_activity(activity, strategy, phases=phases, mastery=mastery, is_first_call=is_first_call)
        if score > 0:
            scored.append((score, activity))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    limit = int(strategy.get("max_activities_per_session") or DEFAULT_MAX_ACTIVITIES)

    recommended = []
    for score, activity in scored[:limit]:
        reason = f"Fits {'/'.join(phases)} phase for a {mastery} learner"
        recommended.append(_recommendation(activity, score, personality_adaptations(activity, personality), reason))

    return {
        "hasActivities": True,
        "recommended": recommended,
        "all_available": [
            {"id": a.get("id"), "name": a.get("name"), "channel": a.get("channel"), "category": a.get("category")}
            for a in activities
        ],
        "principles": list(strategy.get("principles") or []),
        "limits": {
            "max_per_session": limit,
            "max_text_per_week": strategy.get("max_text_messages_per_week"),
            "min_minutes_apart": strategy.get("min_minutes_between_activities"),
        },
        "context_signals": {
            "is_first_call": is_first_call,
            "days_since_last_call": state.get("days_since_last_call", 0),
            "mastery_level": mastery,
            "session_phase": phases[0],
            "session_type": pedagogy.get("sessionType"),
        },
    }


__all__ = [
    "compute_activity_toolkit",
    "find_activity_spec",
    "mastery_level",
    "personality_adaptations",
    "score_activity",
    "session_phases",
]
