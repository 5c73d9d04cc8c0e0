"""Instruction sections: explicit guidance, quick start and reading preamble.

These run last and read the outputs of earlier sections (memories, behavior
targets, learner goals, pedagogy, voice) rather than the raw loaded data, so
that every summary agrees with the detailed sections it points at.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..types import get_attribute_value
from .common import as_records, classify, find_target, pct, section_mapping, spec_config, thresholds_of
from .identity import role_statement
from .registry import register_transform

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "A helpful voice assistant"
ROLE_MAX_CHARS = 200
ROLE_MIN_CUT = 100

INTEREST_GUIDANCE = (
    "When caller asks about these future topics: acknowledge their interest, note it connects to "
    "upcoming material, then gently redirect: 'Great question - we'll dig into that when we get to "
    "[module]. For now, let's build the foundation with [current topic].'"
)
INTEREST_AVOID = (
    "Don't ignore their interest or dismiss it. Don't skip ahead. Don't give a detailed answer "
    "that requires context they don't have yet."
)

# trait -> {level: text}; neuroticism has no moderate entry
PERSONALITY_ADAPTATIONS: Dict[str, Dict[str, str]] = {
    "extraversion": {
        "HIGH": "HIGH extraversion: Match their energy - be engaging and conversational",
        "LOW": "LOW extraversion: Give them space - be concise, allow pauses",
        "MODERATE": "MODERATE extraversion: Balanced engagement - read their energy level each turn",
    },
    "openness": {
        "HIGH": "HIGH openness: Explore ideas - they enjoy intellectual discussion and tangents",
        "LOW": "LOW openness: Stay practical - focus on concrete topics and proven approaches",
        "MODERATE": "MODERATE openness: Mix practical examples with some conceptual exploration",
    },
    "conscientiousness": {
        "HIGH": "HIGH conscientiousness: Provide structured approach - they appreciate organization",
        "LOW": "LOW conscientiousness: Be flexible - allow spontaneous direction changes",
        "MODERATE": "MODERATE conscientiousness: Balance structure with flexibility",
    },
    "agreeableness": {
        "HIGH": "HIGH agreeableness: They're cooperative - gentle guidance works well",
        "LOW": "LOW agreeableness: Be direct - they appreciate straightforward communication and may push back",
        "MODERATE": "MODERATE agreeableness: Direct but warm - they'll engage in healthy debate",
    },
    "neuroticism": {
        "HIGH": "HIGH neuroticism: Extra reassurance - acknowledge their concerns, slower pace",
        "LOW": "LOW neuroticism: Emotionally stable - can handle challenge and critique well",
    },
}
ADAPTATION_ORDER = ("extraversion", "openness", "conscientiousness", "agreeableness", "neuroticism")


# ---------------------------------------------------------------------------
# instructions
# ---------------------------------------------------------------------------


def _memory_groups(context: Any) -> Dict[str, List[Mapping[str, Any]]]:
    by_category = section_mapping(context, "memories").get("byCategory")
    if not isinstance(by_category, Mapping):
        return {}
    return {k: as_records(v) for k, v in by_category.items()}


def _pairs(memories: List[Mapping[str, Any]]) -> str:
    return ", ".join(f'{m.get("key")}="{m.get("value")}"' for m in memories)


def _interest_prefs(groups: Mapping[str, List[Mapping[str, Any]]]) -> List[Mapping[str, Any]]:
    return [m for m in groups.get("PREFERENCE", []) if "interest" in str(m.get("key") or "").lower()]


def memories_instruction(groups: Mapping[str, List[Mapping[str, Any]]]) -> str:
    picked = groups.get("FACT", [])[:3] + groups.get("RELATIONSHIP", [])[:2] + groups.get("CONTEXT", [])[:2]
    if picked:
        return f"Reference naturally in conversation: {_pairs(picked)}"
    parts = []
    if groups.get("PREFERENCE"):
        parts.append("preferences")
    if groups.get("TOPIC"):
        parts.append("topics of interest")
    if parts:
        return f"No biographical facts recorded yet. See {' and '.join(parts)} below. Build rapport naturally."
    return "No specific memories recorded yet. Build rapport and learn about them."


def preferences_instruction(groups: Mapping[str, List[Mapping[str, Any]]]) -> str:
    prefs = groups.get("PREFERENCE", [])[:4]
    if not prefs:
        return "No preferences recorded yet. Observe their communication style."
    return f"Respect caller preferences: {_pairs(prefs)}"


def topics_instruction(groups: Mapping[str, List[Mapping[str, Any]]]) -> str:
    values = [m.get("value") for m in groups.get("TOPIC", [])[:3]]
    values += [m.get("value") for m in _interest_prefs(groups)[:2]]
    if not values:
        return "No specific topics of interest recorded yet."
    return f"Topics of interest to explore: {', '.join(str(v) for v in values)}"


def interest_handling(groups: Mapping[str, List[Mapping[str, Any]]], state: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    interests = _interest_prefs(groups)
    modules = state.get("modules") or []
    if not interests or not modules:
        return None

    review = state.get("module_to_review")
    index = 0
    if review:
        index = next((i for i, m in enumerate(modules) if m.get("slug") == review.get("slug")), -1)
    future = modules[index + 1:]

    tension = []
    for pref in interests:
        value = str(pref.get("value") or "").lower()
        key = str(pref.get("key") or "").lower()
        for module in future:
            name = str(module.get("name") or "").lower()
            description = str(module.get("description") or "").lower()
            slug = str(module.get("slug") or "")
            if value in name or value in description or name in value or (slug and slug in key):
                tension.append(f'"{pref.get("value")}" relates to module "{module.get("name")}" (coming later)')
    if not tension:
        return None
    return {"tension": tension, "guidance": INTEREST_GUIDANCE, "avoid": INTEREST_AVOID}


def personality_adaptation(personality: Optional[Mapping[str, Any]], thresholds: Mapping[str, float]) -> List[str]:
    if not isinstance(personality, Mapping) or not personality:
        return ["No personality data available - observe and adapt during conversation"]
    notes = []
    for trait in ADAPTATION_ORDER:
        score = personality.get(trait)
        if not isinstance(score, (int, float)) or isinstance(score, bool):
            continue
        if score >= thresholds["high"]:
            level = "HIGH"
        elif score <= thresholds["low"]:
            level = "LOW"
        else:
            level = "MODERATE"
        note = PERSONALITY_ADAPTATIONS[trait].get(level)
        if note:
            notes.append(note)
    return notes or ["No specific personality adaptations - use balanced approach"]


def target_meaning(target: Mapping[str, Any], thresholds: Mapping[str, float]) -> Optional[str]:
    value = target.get("targetValue")
    high = target.get("when_high")
    low = target.get("when_low")
    if value is not None and value >= thresholds["high"]:
        return high
    if value is not None and value <= thresholds["low"]:
        return low
    if high and low:
        return f"Balance: {high.split(',')[0].strip()} while also {low.split(',')[0].lower().strip()}"
    return high or low or "balanced approach"


def targets_summary(context: Any) -> List[Dict[str, Any]]:
    thresholds = thresholds_of(context)
    targets = as_records(section_mapping(context, "behaviorTargets").get("all"))
    return [
        {
            "what": t.get("name") or t.get("parameterId"),
            "target": classify(t.get("targetValue"), context),
            "meaning": target_meaning(t, thresholds),
        }
        for t in targets[:5]
    ]


def session_focus(state: Mapping[str, Any], *, quoted: bool) -> Optional[str]:
    modules = state.get("modules") or []
    review = state.get("module_to_review")
    upcoming = state.get("next_module")

    def q(module: Mapping[str, Any]) -> str:
        return f'"{module.get("name")}"' if quoted else str(module.get("name"))

    if state.get("is_first_call") and modules:
        return f"First call - introduce {q(modules[0])}" if quoted else f"First session - introduce {q(modules[0])}"
    if review and upcoming and review.get("slug") != upcoming.get("slug"):
        return f"Review {q(review)} → Introduce {q(upcoming)}"
    if upcoming:
        return f"Continue with {q(upcoming)}"
    if review:
        return f"Deepen mastery of {q(review)}"
    return None


def curriculum_guidance(context: Any) -> str:
    state = context.shared_state
    modules = state.get("modules") or []
    parts = []
    if modules:
        content = spec_config(context.resolved_specs.content)
        name = (content.get("curriculum") or {}).get("name") or (context.resolved_specs.content or {}).get("name")
        parts.append(f"Curriculum: {name or 'Learning'} ({len(modules)} modules)")
        parts.append(f"Progress: {len(state.get('completed_modules') or ())}/{len(modules)} completed")
        focus = session_focus(state, quoted=True)
        if focus:
            parts.append(f"THIS SESSION: {focus}")

    attributes = as_records(context.loaded_data.get("callerAttributes"))
    next_content = [a for a in attributes if "next_" in str(a.get("key")) or "ready_for" in str(a.get("key"))]
    current = next(
        (a for a in attributes if "current_module" in str(a.get("key")) or "active_module" in str(a.get("key"))),
        None,
    )
    mastery = next(
        (a for a in attributes if "mastery" in str(a.get("key")) and "mastery_" not in str(a.get("key"))),
        None,
    )

    if current is not None:
        parts.append(f"Current module: {get_attribute_value(current)}")
    if mastery is not None:
        value = get_attribute_value(mastery)
        shown = f"{value * 100:.0f}%" if isinstance(value, (int, float)) and not isinstance(value, bool) else value
        parts.append(f"Mastery level: {shown}")
    if next_content:
        parts.append(f"Next content to cover: {', '.join(str(get_attribute_value(a)) for a in next_content)}")

    if not parts:
        return "No curriculum progress tracked yet - start with first module."
    return ". ".join(parts)


def _goals(context: Any) -> List[Mapping[str, Any]]:
    return as_records(section_mapping(context, "learnerGoals").get("goals"))


def session_guidance(context: Any) -> str:
    goals = _goals(context)[:3]
    if not goals:
        return "No specific session goals set - explore learner interests and set goals collaboratively."
    return f"Session goals: {'; '.join(str(g.get('name')) for g in goals)}"


def content_trust_instruction(context: Any) -> Optional[Dict[str, Any]]:
    trust = section_mapping(context, "contentTrust")
    if not trust.get("hasTrustData"):
        return None
    return {
        "authority": trust.get("contentAuthority"),
        "rules": trust.get("trustRules"),
        "reference_card": trust.get("referenceCard"),
        "freshness_warnings": [w.get("message") for w in as_records(trust.get("freshnessWarnings"))],
    }


@register_transform("computeInstructions")
def compute_instructions(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    groups = _memory_groups(context)
    state = context.shared_state
    teaching = section_mapping(context, "teachingContent")

    instructions = {
        "use_memories": memories_instruction(groups),
        "use_preferences": preferences_instruction(groups),
        "use_topics": topics_instruction(groups),
        "interest_handling": interest_handling(groups, state),
        "personality_adaptation": personality_adaptation(context.loaded_data.get("personality"), thresholds_of(context)),
        "behavior_targets_summary": targets_summary(context),
        "curriculum_guidance": curriculum_guidance(context),
        "session_guidance": session_guidance(context),
        "content_trust": content_trust_instruction(context),
        "teaching_points": teaching.get("teachingPoints"),
        "session_pedagogy": context.sections.get("instructions_pedagogy"),
        "voice": context.sections.get("instructions_voice"),
    }
    logger.debug("Instructions built with %d memory groups", len(groups))
    return instructions


# ---------------------------------------------------------------------------
# quick start
# ---------------------------------------------------------------------------


def truncate_role(role: str, limit: int = ROLE_MAX_CHARS) -> str:
    """Cut at the last sentence end, else the last space, past ``ROLE_MIN_CUT``."""
    if len(role) <= limit:
        return role
    head = role[:limit]
    sentence_end = max(head.rfind("."), head.rfind("?"), head.rfind("!"))
    if sentence_end > ROLE_MIN_CUT:
        return role[:sentence_end + 1]
    space = head.rfind(" ")
    if space > ROLE_MIN_CUT:
        return role[:space] + "..."
    return head + "..."


def you_are(identity: Optional[Mapping[str, Any]], domain_name: Optional[str]) -> str:
    if identity and identity.get("config"):
        role = role_statement(spec_config(identity)) or identity.get("description") or DEFAULT_ROLE
    else:
        role = DEFAULT_ROLE
    if domain_name and (role == DEFAULT_ROLE or "generic" in role.lower()):
        role = f"A {domain_name} tutor and voice assistant"
    return truncate_role(role)


def learner_goals_line(goals: List[Mapping[str, Any]]) -> str:
    if not goals:
        return "No specific goals yet - discover what they want to learn in this session"
    parts = []
    for goal in goals[:3]:
        progress = goal.get("progress") or 0
        parts.append(f"{goal.get('name')} ({pct(progress)}% complete)" if progress > 0 else str(goal.get("name")))
    return "; ".join(parts)


def curriculum_progress_line(state: Mapping[str, Any]) -> Optional[str]:
    modules = state.get("modules") or []
    if not modules:
        return None
    completed = len(state.get("completed_modules") or ())
    total = len(modules)
    current = (state.get("module_to_review") or state.get("next_module") or {}).get("name")
    if completed == 0:
        return f"Starting curriculum (0/{total} modules) - begin with {modules[0].get('name') or 'first module'}"
    if completed == total:
        return f"Curriculum complete ({total}/{total}) - review and reinforce"
    line = f"Progress: {completed}/{total} modules mastered"
    return f"{line} | Current: {current}" if current else line


def _level(targets: List[Mapping[str, Any]], parameter_id: str, context: Any) -> str:
    target = find_target(targets, parameter_id)
    value = (target or {}).get("targetValue")
    return classify(0.5 if value is None else value, context) or "MODERATE"


def voice_style(targets: List[Mapping[str, Any]], context: Any) -> str:
    return (
        f"{_level(targets, 'BEH-WARMTH', context)} warmth, "
        f"{_level(targets, 'BEH-QUESTION-RATE', context)} questions, "
        f"{_level(targets, 'BEH-RESPONSE-LENGTH', context)} response length"
    )


def critical_voice(targets: List[Mapping[str, Any]], context: Any) -> Dict[str, Any]:
    response = _level(targets, "BEH-RESPONSE-LENGTH", context)
    turn = _level(targets, "BEH-TURN-LENGTH", context)
    pause = _level(targets, "BEH-PAUSE-TOLERANCE", context)
    return {
        "sentences_per_turn": {"LOW": "1-2", "HIGH": "3-4"}.get(response, "2-3"),
        "max_seconds": {"LOW": 10, "HIGH": 20}.get(turn, 15),
        "silence_wait": {"HIGH": "4-5s, don't fill", "LOW": "2s then prompt"}.get(pause, "3s then prompt"),
    }


def first_line(identity: Optional[Mapping[str, Any]], is_first_call: bool) -> str:
    opening = ((spec_config(identity).get("sessionStructure") or {}).get("opening") or {}).get("instruction")
    if opening:
        return opening
    if is_first_call:
        return "Good to have you. Let's just ease into this... no rush."
    return "Good to reconnect. Let's pick up where we left off."


@register_transform("computeQuickStart")
def compute_quick_start(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    state = context.shared_state
    identity = context.resolved_specs.identity
    caller = context.caller or {}
    targets = as_records(section_mapping(context, "behaviorTargets").get("all"))
    memories = as_records(section_mapping(context, "memories").get("all"))
    call_count = context.loaded_data.get("callCount") or 0

    return {
        "you_are": you_are(identity, (context.caller_domain or {}).get("name")),
        "this_caller": f"{caller.get('name') or 'Unknown'} (call #{call_count + 1})",
        "this_session": session_focus(state, quoted=False) or "Continue conversation",
        "learner_goals": learner_goals_line(_goals(context)),
        "curriculum_progress": curriculum_progress_line(state),
        "key_memory": f"{memories[0].get('key')}: {memories[0].get('value')}" if memories else None,
        "voice_style": voice_style(targets, context),
        "critical_voice": critical_voice(targets, context),
        "first_line": first_line(identity, bool(state.get("is_first_call"))),
    }


# ---------------------------------------------------------------------------
# preamble
# ---------------------------------------------------------------------------

SYSTEM_INSTRUCTION = (
    "You are receiving a structured context package for your next conversation. This data has been "
    "assembled specifically for this caller based on their history, personality, and learning progress. "
    "Use it to deliver a personalized, effective session."
)

READING_ORDER = [
    "1. SCAN _quickStart first - this is your instant context",
    "2. CHECK instructions.voice - this is HOW you speak",
    "3. FOLLOW instructions.session_pedagogy - this is your session roadmap",
    "4. USE identity - this is WHO you are",
    "5. REFERENCE content.modules - this is WHAT you teach",
    "6. APPLY behaviorTargets for style calibration",
    "7. PERSONALIZE with memories and personality",
]

SECTION_GUIDE = {
    "_quickStart": {
        "priority": "READ FIRST",
        "what": "Instant context - caller, session goal, opening line",
        "action": "Scan in <1 second. This orients you immediately.",
    },
    "instructions.voice": {
        "priority": "HIGHEST",
        "what": "Voice-specific rules - response length, pacing, turn-taking",
        "action": "Follow these for natural conversation. Never monologue.",
    },
    "instructions.session_pedagogy": {
        "priority": "HIGH",
        "what": "Your step-by-step session plan",
        "action": "Follow flow steps in order. reviewFirst → bridge → newMaterial",
    },
    "identity": {
        "priority": "HIGH",
        "what": "WHO you are - role, techniques, style, boundaries",
        "action": "Use techniques when appropriate. Never violate boundaries.",
    },
    "content": {
        "priority": "MEDIUM",
        "what": "WHAT you teach - curriculum modules in sequence",
        "action": "Stay within current/next module. Don't skip ahead.",
    },
    "behaviorTargets": {
        "priority": "MEDIUM",
        "what": "HOW you communicate - style calibration",
        "action": "HIGH targets → follow when_high. LOW → follow when_low. MODERATE → blend both.",
    },
    "memories": {
        "priority": "LOW",
        "what": "Facts/preferences from previous calls",
        "action": "Reference naturally. Don't force. Shows you remember them.",
    },
}

CRITICAL_RULES = [
    "If RETURNING_CALLER: ALWAYS review before new material",
    "If review fails (caller can't recall): Don't proceed. Re-teach foundation first.",
    "If caller struggles: Back up. Different example. Don't push forward.",
    "If caller wants to skip review: Only allow if they PROVE they know it.",
    "End at natural stopping point, never mid-concept.",
]

DEFAULT_VOICE_RULES = [
    "MAX 3 sentences per turn - then ask a question or pause",
    "If caller is silent for 3+ seconds after a question, wait. Don't fill.",
    "Use natural speech: 'So...', 'Right...', 'Here's the thing...'",
    "Check understanding every 2-3 turns: 'Does that track?'",
    "If interrupted, stop immediately. Acknowledge. Let them speak.",
    "End responses with engagement: question, or invitation to respond",
]


@register_transform("computePreamble")
def compute_preamble(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    rules = (spec_config(context.resolved_specs.voice).get("voice_rules") or {}).get("rules")
    return {
        "systemInstruction": SYSTEM_INSTRUCTION,
        "readingOrder": list(READING_ORDER),
        "sectionGuide": {k: dict(v) for k, v in SECTION_GUIDE.items()},
        "criticalRules": list(CRITICAL_RULES),
        "voiceRules": list(rules) if rules else list(DEFAULT_VOICE_RULES),
    }


__all__ = [
    "compute_instructions",
    "compute_preamble",
    "compute_quick_start",
    "curriculum_guidance",
    "interest_handling",
    "personality_adaptation",
    "target_meaning",
    "truncate_role",
    "you_are",
]
