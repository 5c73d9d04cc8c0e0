"""Memory sections: deduplicate, score against the session, group by category.

The three steps are separate transforms so a section can chain them::

    transform: [deduplicateMemories, scoreMemoryRelevance, groupMemoriesByCategory]

``deduplicateAndGroupMemories`` runs dedup and grouping in one step.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from .common import as_records
from .registry import register_transform

DEFAULT_PER_CATEGORY = 5
FLAT_LIST_LIMIT = 20

_WHITESPACE = re.compile(r"\s+")
_WORD = re.compile(r"[a-z0-9]+")


def memory_key(memory: Mapping[str, Any]) -> str:
    key = _WHITESPACE.sub("_", str(memory.get("key") or "").lower())
    return f"{memory.get('category')}:{key}"


def deduplicate(memories: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """One memory per normalized key; the higher confidence wins, ties keep the first."""
    seen: Dict[str, Dict[str, Any]] = {}
    for memory in memories:
        key = memory_key(memory)
        existing = seen.get(key)
        if existing is None or (memory.get("confidence") or 0) > (existing.get("confidence") or 0):
            seen[key] = dict(memory)
    return list(seen.values())


def _tokens(*texts: Any) -> Set[str]:
    words: Set[str] = set()
    for text in texts:
        if text:
            words.update(w for w in _WORD.findall(str(text).lower()) if len(w) > 2)
    return words


def compute_memory_relevance(
    memory: Mapping[str, Any],
    session: Mapping[str, Any],
    category_weights: Optional[Mapping[str, float]] = None,
) -> float:
    """Keyword overlap between a memory and the session topics, plus a category boost.

    ``session`` may carry ``currentModule`` (str), ``upcomingTopics`` and
    ``learnerGoals`` (lists of str). The result is clamped to [0, 1].
    """
    context_words = _tokens(
        session.get("currentModule"),
        *(session.get("upcomingTopics") or []),
        *(session.get("learnerGoals") or []),
    )
    boost = float((category_weights or {}).get(str(memory.get("category")), 0.0))
    if not context_words:
        return min(1.0, boost)
    memory_words = _tokens(memory.get("key"), memory.get("value"))
    overlap = len(memory_words & context_words) / len(context_words)
    return max(0.0, min(1.0, overlap + boost))


def session_topics(context: Any) -> Dict[str, Any]:
    state = context.shared_state
    current = state.get("next_module") or state.get("module_to_review")
    modules = state.get("modules") or []
    index = next((i for i, m in enumerate(modules) if current is not None and m.get("id") == current.get("id")), -1)
    goals = as_records(context.loaded_data.get("goals"))
    return {
        "currentModule": (current or {}).get("name"),
        "upcomingTopics": [m.get("name") for m in modules[index + 1:index + 4] if m.get("name")],
        "learnerGoals": [g.get("name") for g in goals if g.get("name")],
    }


def group_by_category(memories: List[Mapping[str, Any]], per_category: int) -> Dict[str, List[Dict[str, Any]]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for memory in memories:
        bucket = groups.setdefault(str(memory.get("category")), [])
        if len(bucket) < per_category:
            bucket.append({
                "key": memory.get("key"),
                "value": memory.get("value"),
                "confidence": memory.get("confidence"),
            })
    return groups


def _per_category(section: Any) -> int:
    return int((getattr(section, "config", None) or {}).get("memoriesPerCategory", DEFAULT_PER_CATEGORY))


@register_transform("deduplicateMemories")
def deduplicate_memories(raw: Any, context: Any, section: Any) -> List[Dict[str, Any]]:
    return deduplicate(as_records(raw))


@register_transform("scoreMemoryRelevance")
def score_memory_relevance(raw: Any, context: Any, section: Any) -> List[Dict[str, Any]]:
    """Attach ``relevance`` and ``combinedScore`` and sort by the latter.

    ``combinedScore = alpha * confidence + (1 - alpha) * relevance`` with
    ``alpha`` from ``config.relevanceAlpha`` (default 1.0, pure confidence).
    """
    config = getattr(section, "config", None) or {}
    alpha = float(config.get("relevanceAlpha", 1.0))
    weights = config.get("categoryWeights") or {}
    session = session_topics(context)

    scored = []
    for memory in as_records(raw):
        item = dict(memory)
        relevance = compute_memory_relevance(item, session, weights)
        item["relevance"] = relevance
        item["combinedScore"] = alpha * float(item.get("confidence") or 0) + (1 - alpha) * relevance
        scored.append(item)
    scored.sort(key=lambda m: m["combinedScore"], reverse=True)
    return scored


@register_transform("groupMemoriesByCategory")
def group_memories_by_category(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    memories = as_records(raw)
    return {
        "totalCount": len(memories),
        "byCategory": group_by_category(memories, _per_category(section)),
        "all": [
            {
                "category": m.get("category"),
                "key": m.get("key"),
                "value": m.get("value"),
                "confidence": m.get("confidence"),
            }
            for m in memories[:FLAT_LIST_LIMIT]
        ],
        "_deduplicated": True,
    }


@register_transform("deduplicateAndGroupMemories")
def deduplicate_and_group_memories(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    return group_memories_by_category(deduplicate(as_records(raw)), context, section)


__all__ = [
    "compute_memory_relevance",
    "deduplicate",
    "deduplicate_and_group_memories",
    "deduplicate_memories",
    "group_by_category",
    "group_memories_by_category",
    "memory_key",
    "score_memory_relevance",
    "session_topics",
]
