"""Sections read straight off the subject record: history, session attributes, goals, domain."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..shared_state import parse_timestamp
from ..types import get_attribute_value
from .common import as_records, classify
from .registry import register_transform

SESSION_KEY_MARKERS = ("session_", "arc_", "continuity", "thread")


def _call_date(value: Any) -> Optional[str]:
    parsed = parse_timestamp(value)
    if parsed is not None:
        return parsed.date().isoformat()
    if value:
        return str(value).split("T")[0]
    return None


@register_transform("computeCallHistory")
def compute_call_history(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    raw = raw if isinstance(raw, Mapping) else {}
    history = []
    for call in as_records(raw.get("recentCalls")):
        history.append({
            "callId": call.get("id"),
            "date": _call_date(call.get("createdAt")),
            "scores": [
                {
                    "parameter": (score.get("parameter") or {}).get("name") or score.get("parameterId"),
                    "score": score.get("score"),
                    "level": classify(score.get("score"), context),
                }
                for score in as_records(call.get("scores"))
            ],
        })
    return {
        "totalCalls": raw.get("callCount") or 0,
        "mostRecent": history[0] if history else None,
        "recent": history[:3],
    }


def is_session_attribute(attr: Mapping[str, Any]) -> bool:
    key = str(attr.get("key") or "")
    if any(marker in key for marker in SESSION_KEY_MARKERS):
        return True
    return "SESSION" in str(attr.get("sourceSpecSlug") or "")


@register_transform("filterSessionAttributes")
def filter_session_attributes(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    attrs = [a for a in as_records(raw) if is_session_attribute(a)]
    return {
        "hasData": bool(attrs),
        "context": [
            {"key": a.get("key"), "value": get_attribute_value(a), "confidence": a.get("confidence")}
            for a in attrs
        ],
    }


@register_transform("mapGoals")
def map_goals(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    goals = as_records(raw)
    return {
        "hasData": bool(goals),
        "goals": [
            {
                "type": g.get("type"),
                "name": g.get("name"),
                "description": g.get("description"),
                "progress": g.get("progress"),
                "priority": g.get("priority"),
                "isPlaybookGoal": g.get("playbookId") is not None,
            }
            for g in goals
        ],
    }


@register_transform("computeDomainContext")
def compute_domain_context(raw: Any, context: Any, section: Any) -> Optional[Dict[str, Any]]:
    raw = raw if isinstance(raw, Mapping) else {}
    domain = raw.get("callerDomain")
    if not domain:
        return None
    name = domain.get("name")
    domain_data: List[Dict[str, Any]] = [
        {"key": a.get("key"), "value": get_attribute_value(a)}
        for a in as_records(raw.get("callerAttributes"))
        if a.get("scope") == "DOMAIN" and a.get("domain") == name
    ]
    return {
        "name": name,
        "description": domain.get("description"),
        "domainSpecificData": domain_data,
    }


__all__ = [
    "compute_call_history",
    "compute_domain_context",
    "filter_session_attributes",
    "is_session_attribute",
    "map_goals",
]
