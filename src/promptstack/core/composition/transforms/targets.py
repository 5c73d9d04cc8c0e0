"""Behavior targets: personalized values first, then static defaults by scope."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Set

from .common import as_records, classify
from .registry import register_transform

SCOPE_PRIORITY = {
    "CALLER": 4,
    "PLAYBOOK": 3,
    "DOMAIN": 2,
    "SYSTEM": 1,
}


def _normalized(target: Mapping[str, Any], *, source: str, scope: str) -> Dict[str, Any]:
    return {
        "parameterId": target.get("parameterId"),
        "targetValue": target.get("targetValue"),
        "confidence": target.get("confidence"),
        "source": source,
        "scope": scope,
        "parameter": target.get("parameter") or {},
    }


def merge_targets(
    behavior_targets: List[Mapping[str, Any]],
    caller_targets: List[Mapping[str, Any]],
    playbook_ids: Optional[Set[str]] = None,
) -> List[Dict[str, Any]]:
    """One target per parameter.

    Caller targets always win. Among static targets the higher scope wins
    (CALLER > PLAYBOOK > DOMAIN > SYSTEM). PLAYBOOK targets only count for
    a loaded playbook when ``playbook_ids`` is given.
    """
    by_parameter: Dict[str, Dict[str, Any]] = {}
    for target in caller_targets:
        by_parameter[target.get("parameterId")] = _normalized(target, source="CallerTarget", scope="CALLER_PERSONALIZED")

    for target in behavior_targets:
        pid = target.get("parameterId")
        existing = by_parameter.get(pid)
        if existing is not None and existing["source"] == "CallerTarget":
            continue
        scope = str(target.get("scope") or "")
        if scope == "PLAYBOOK" and playbook_ids and target.get("playbookId") not in playbook_ids:
            continue
        current = SCOPE_PRIORITY.get(scope, 0)
        previous = SCOPE_PRIORITY.get(existing["scope"], 0) if existing else 0
        if current > previous:
            by_parameter[pid] = _normalized(target, source="BehaviorTarget", scope=scope)

    return list(by_parameter.values())


@register_transform("mergeAndGroupTargets")
def merge_and_group_targets(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    raw = raw if isinstance(raw, Mapping) else {}
    playbooks = as_records(context.loaded_data.get("playbooks"))
    playbook_ids = {p.get("id") for p in playbooks if p.get("id")}
    merged = merge_targets(
        as_records(raw.get("behaviorTargets")),
        as_records(raw.get("callerTargets")),
        playbook_ids,
    )

    by_domain: Dict[str, List[Dict[str, Any]]] = {}
    flat = []
    for target in merged:
        parameter = target["parameter"]
        name = parameter.get("name") or target["parameterId"]
        level = classify(target["targetValue"], context)
        by_domain.setdefault(parameter.get("domainGroup") or "Other", []).append({
            "parameterId": target["parameterId"],
            "name": name,
            "targetValue": target["targetValue"],
            "targetLevel": level or "MODERATE",
            "interpretationHigh": parameter.get("interpretationHigh"),
            "interpretationLow": parameter.get("interpretationLow"),
        })
        flat.append({
            "name": name,
            "parameterId": target["parameterId"],
            "targetValue": target["targetValue"],
            "targetLevel": level,
            "when_high": parameter.get("interpretationHigh"),
            "when_low": parameter.get("interpretationLow"),
            "scope": target["scope"],
            "source": target["source"],
        })

    return {"totalCount": len(merged), "byDomain": by_domain, "all": flat}


__all__ = ["SCOPE_PRIORITY", "merge_and_group_targets", "merge_targets"]
