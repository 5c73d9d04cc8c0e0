"""Human-readable renderings of a composition run.

- :func:`build_caller_context` - markdown summary of the run's sections,
  stored alongside the document.
- :func:`build_agent_identity_summary` - one-line WHO/WHAT description.
- :func:`render_prompt_summary` - markdown rendering of a finished document
  for review screens and the CLI.

Section lists are configured outside the core, so any well-known key may
hold a list or a scalar instead of the shape the built-in transforms
produce. Those values are skipped here rather than rendered.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .types import ResolvedSpecs, classify_value

NO_SPECS_SUMMARY = "No identity or content specs - using default conversational style."


def _pct(value: Any) -> str:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        value = 0
    return f"{round(value * 100):.0f}%"


def as_mapping(value: Any) -> Mapping[str, Any]:
    """Return ``value`` when it is a mapping, else an empty one."""
    return value if isinstance(value, Mapping) else {}


def _records(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _count(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def build_caller_context(sections: Mapping[str, Any], caller: Optional[Mapping[str, Any]]) -> str:
    parts: List[str] = ["## Caller Information"]
    caller = as_mapping(caller)
    for label, key in (("Name", "name"), ("Email", "email"), ("Phone", "phone")):
        if caller.get(key):
            parts.append(f"- {label}: {caller[key]}")

    personality = as_mapping(sections.get("personality"))
    if personality:
        parts.append("\n## Personality Profile")
        for name, trait in as_mapping(personality.get("traits")).items():
            trait = as_mapping(trait)
            if trait.get("score") is not None:
                level = str(trait.get("level") or "unknown").lower()
                label = str(name)
                parts.append(f"- {label[:1].upper()}{label[1:]}: {level} ({_pct(trait['score'])})")

    memories = as_mapping(sections.get("memories"))
    if memories.get("totalCount"):
        parts.append("\n## Key Memories")
        for category, items in as_mapping(memories.get("byCategory")).items():
            parts.append(f"\n### {category}")
            for memory in _records(items):
                parts.append(f"- {memory.get('key')}: {memory.get('value')}")

    targets = as_mapping(sections.get("behaviorTargets"))
    if targets.get("totalCount"):
        parts.append("\n## Agent Behavior Targets")
        for target in _records(targets.get("all")):
            level = str(target.get("targetLevel") or "MODERATE").lower()
            parts.append(f"- {target.get('name')}: {level} ({_pct(target.get('targetValue'))})")

    history = as_mapping(sections.get("callHistory"))
    if history.get("totalCalls"):
        parts.append("\n## Recent Interaction Summary")
        parts.append(f"{history['totalCalls']} previous calls on record.")
        recent = as_mapping(history.get("mostRecent"))
        if recent:
            parts.append(f"Most recent call: {recent.get('date')}")

    curriculum = as_mapping(sections.get("curriculum"))
    if curriculum.get("hasData"):
        parts.append("\n## Curriculum Progress")
        parts.append(f"- Curriculum: {curriculum.get('name')}")
        parts.append(f"- Total Modules: {curriculum.get('totalModules')}")
        parts.append(f"- Completed: {curriculum.get('completedCount')}/{curriculum.get('totalModules')}")

    goals = as_mapping(sections.get("learnerGoals"))
    if goals.get("hasData"):
        parts.append("\n## Learner Goals")
        for goal in _records(goals.get("goals")):
            progress = goal.get("progress")
            suffix = f" [{_pct(progress)} complete]" if isinstance(progress, (int, float)) and progress > 0 else ""
            parts.append(f"- {goal.get('name')}{suffix}")

    domain = as_mapping(sections.get("domain"))
    if domain:
        parts.append("\n## Domain Context")
        parts.append(f"- Domain: {domain.get('name')}")
        if domain.get("description"):
            parts.append(f"- Description: {domain['description']}")

    identity = as_mapping(sections.get("identity"))
    if identity:
        parts.append("\n## Agent Identity (WHO)")
        parts.append(f"- Identity Spec: {identity.get('specName')}")
        if identity.get("role"):
            parts.append(f"- Core Role: {identity['role']}")

    content = as_mapping(sections.get("content"))
    if content:
        parts.append("\n## Curriculum/Content (WHAT)")
        parts.append(f"- Content Spec: {content.get('specName')}")
        if content.get("curriculumName"):
            parts.append(f"- Curriculum: {content['curriculumName']}")

    teaching = as_mapping(sections.get("teachingContent"))
    if teaching.get("hasTeachingContent"):
        parts.append("\n## Teaching Content")
        parts.append(f"- {teaching.get('totalAssertions')} approved teaching points")
        sources = teaching.get("sources")
        parts.append(f"- Sources: {', '.join(str(s) for s in sources) if isinstance(sources, list) else ''}")
        if teaching.get("highExamRelevanceCount"):
            parts.append(f"- {teaching['highExamRelevanceCount']} high exam-relevance assertions")

    return "\n".join(parts)


def build_agent_identity_summary(specs: ResolvedSpecs) -> str:
    if not specs.identity and not specs.content:
        return NO_SPECS_SUMMARY
    parts = []
    if specs.identity:
        parts.append(f"WHO: {specs.identity.get('name')}")
        role = (specs.identity.get("config") or {}).get("roleStatement")
        if role:
            parts.append(f"Role: {role[:100]}...")
    if specs.content:
        parts.append(f"WHAT: {specs.content.get('name')}")
        curriculum = (specs.content.get("config") or {}).get("name")
        if curriculum:
            parts.append(f"Curriculum: {curriculum}")
    return ". ".join(parts)


def _quick_start_block(qs: Mapping[str, Any]) -> List[str]:
    lines = ["## Quick Start\n"]
    for label, key in (("Caller", "this_caller"), ("Session", "this_session"),
                       ("Voice", "voice_style"), ("Goals", "learner_goals"),
                       ("Key Memory", "key_memory")):
        if qs.get(key):
            lines.append(f"**{label}**: {qs[key]}")
    if qs.get("first_line"):
        lines.append(f'**Opening**: "{qs["first_line"]}"')
    voice = as_mapping(qs.get("critical_voice"))
    if voice:
        lines.append(
            f"**Voice Rules**: {voice.get('sentences_per_turn') or '2-3'} sentences, "
            f"max {voice.get('max_seconds') or 15}s, silence wait {voice.get('silence_wait') or '3s'}"
        )
    lines.append("")
    return lines


def _curriculum_block(curriculum: Mapping[str, Any]) -> List[str]:
    modules = _records(curriculum.get("modules"))
    completed = _count(curriculum.get("completedCount"))
    total = _count(curriculum.get("totalModules"))
    lines = ["## Curriculum\n",
             f"**{curriculum.get('name') or 'Curriculum'}**: {completed}/{total} modules ({_pct(completed / (total or 1))})\n"]
    in_progress = next((m for m in modules if m.get("status") == "in_progress"), None)
    if in_progress:
        lines.append(f"**Current**: {in_progress.get('name')}")
    upcoming = as_mapping(curriculum.get("nextModule"))
    if upcoming:
        lines.append(f"**Next**: {upcoming.get('name')}")
    lines.append("\n**All Modules**:")
    marks = {"completed": "✓", "in_progress": "→"}
    for module in modules[:5]:
        lines.append(f"{marks.get(module.get('status'), '○')} {module.get('name')}")
    if len(modules) > 5:
        lines.append(f"  ... and {len(modules) - 5} more")
    lines.append("")
    return lines


def render_prompt_summary(document: Mapping[str, Any]) -> str:
    """Deterministic markdown view of a composed document."""
    parts: List[str] = ["# SESSION PROMPT\n"]
    instructions = as_mapping(document.get("instructions"))

    quick_start = as_mapping(document.get("_quickStart"))
    if quick_start:
        parts.extend(_quick_start_block(quick_start))

    pedagogy = as_mapping(instructions.get("session_pedagogy"))
    if pedagogy:
        parts.append("## Session Flow\n")
        parts.append(f"**Type**: {pedagogy.get('sessionType') or 'UNKNOWN'}\n")
        flow = pedagogy.get("flow")
        if isinstance(flow, list) and flow:
            parts.append("**Steps**:")
            parts.extend(f"- {step}" for step in flow)
        parts.append("")

    curriculum = as_mapping(document.get("curriculum"))
    if curriculum.get("hasData") and curriculum.get("modules"):
        parts.extend(_curriculum_block(curriculum))

    toolkit = as_mapping(document.get("activityToolkit"))
    recommended = _records(toolkit.get("recommended"))
    if toolkit.get("hasActivities") and recommended:
        parts.append("## Activity Toolkit\n")
        for activity in recommended:
            channel = "text" if activity.get("channel") == "text" else "voice"
            parts.append(f"- **{activity.get('name')}** ({channel}) - {activity.get('reason')}")
        parts.append("")

    trust = as_mapping(document.get("contentTrust"))
    if trust.get("hasTrustData"):
        for key in ("contentAuthority", "trustRules", "referenceCard"):
            if trust.get(key):
                parts.append(str(trust[key]))
        parts.append("")

    identity = as_mapping(document.get("identity"))
    if identity:
        parts.append("## Identity\n")
        role = identity.get("role")
        if isinstance(role, str) and role:
            parts.append(f"**Role**: {role[:200]}{'...' if len(role) > 200 else ''}")
        if identity.get("primaryGoal"):
            parts.append(f"**Goal**: {identity['primaryGoal']}")
        parts.append("")

    targets = _records(as_mapping(document.get("behaviorTargets")).get("all"))
    if targets:
        parts.append("## Behavior Targets\n")
        for target in targets:
            value = target.get("targetValue")
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                value = None
            level = target.get("targetLevel") or classify_value(value) or "MODERATE"
            parts.append(f"- {target.get('name')}: {level} ({_pct(value)})")
        parts.append("")

    memories = as_mapping(document.get("memories"))
    if memories.get("totalCount"):
        parts.append("## Memories\n")
        parts.append(f"**Total**: {memories['totalCount']} memories\n")
        for category, items in as_mapping(memories.get("byCategory")).items():
            items = _records(items)
            if items:
                parts.append(f"**{category}**:")
                parts.extend(f"- {m.get('key')}: {m.get('value')}" for m in items[:3])
        parts.append("")

    critical = as_mapping(document.get("_preamble")).get("criticalRules")
    if isinstance(critical, list) and critical:
        parts.append("## Critical Rules\n")
        parts.extend(f"- {rule}" for rule in critical)
        parts.append("")

    history = as_mapping(document.get("callHistory"))
    if history:
        parts.append(f"---\n*Call #{history.get('totalCalls') or 1} with this caller*")

    return "\n".join(parts)


def merged_target_count(sections: Mapping[str, Any]) -> int:
    """Number of merged behaviour targets stored under ``behaviorTargets``."""
    merged = as_mapping(sections.get("behaviorTargets")).get("all")
    return len(merged) if isinstance(merged, list) else 0


__all__ = [
    "NO_SPECS_SUMMARY",
    "as_mapping",
    "build_agent_identity_summary",
    "build_caller_context",
    "merged_target_count",
    "render_prompt_summary",
]
