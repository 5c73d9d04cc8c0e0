"""Voice delivery rules: response length, pacing, turn-taking.

Every block reads the voice spec's config when present and falls back to
built-in defaults key by key. Pace and voice adaptations follow the raw
personality scores.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .common import spec_config, thresholds_of
from .registry import register_transform

INTROVERT_PACE = "Slower pace - give them space"
EXTROVERT_PACE = "Match their energy - quicker exchanges OK"
DEFAULT_PACE = "Moderate pace - read their cues"

# (personality trait, direction, config key, default text)
ADAPTATION_RULES = (
    ("extraversion", "low", "lowExtraversion", "INTROVERT: Shorter turns, more pauses, don't fill silence"),
    ("neuroticism", "high", "highNeuroticism", "ANXIOUS: Extra warmth, slower pace, more reassurance"),
    ("openness", "high", "highOpenness", "CURIOUS: Can explore tangents briefly, enjoy intellectual play"),
    ("agreeableness", "low", "lowAgreeableness", "DIRECT: Skip pleasantries, get to the point, they'll push back - that's OK"),
)


def _score(personality: Optional[Mapping[str, Any]], trait: str) -> Optional[float]:
    value = (personality or {}).get(trait)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _is(score: Optional[float], direction: str, thresholds: Mapping[str, float]) -> bool:
    if score is None:
        return False
    if direction == "low":
        return score <= thresholds["low"]
    return score >= thresholds["high"]


def pace_match(pacing: Mapping[str, Any], personality: Optional[Mapping[str, Any]], thresholds: Mapping[str, float]) -> str:
    extraversion = _score(personality, "extraversion")
    overrides = pacing.get("paceAdaptation") or {}
    if _is(extraversion, "low", thresholds):
        return overrides.get("introvert") or INTROVERT_PACE
    if _is(extraversion, "high", thresholds):
        return overrides.get("extrovert") or EXTROVERT_PACE
    return overrides.get("default") or DEFAULT_PACE


def voice_adaptations(
    adaptation_config: Mapping[str, Any],
    personality: Optional[Mapping[str, Any]],
    thresholds: Mapping[str, float],
) -> List[str]:
    configured = adaptation_config.get("adaptations") or {}
    notes = []
    for trait, direction, key, default in ADAPTATION_RULES:
        if not _is(_score(personality, trait), direction, thresholds):
            continue
        cfg = configured.get(key)
        notes.append(f"{cfg.get('label')}: {cfg.get('guidance')}" if cfg else default)
    return notes or ["No special voice adaptations needed"]


def build_voice_guidance(
    voice_spec: Optional[Mapping[str, Any]],
    personality: Optional[Mapping[str, Any]],
    thresholds: Mapping[str, float],
) -> Dict[str, Any]:
    config = spec_config(voice_spec)
    length = config.get("response_length") or {}
    pacing = config.get("pacing") or {}
    speech = config.get("natural_speech") or {}
    interruptions = config.get("interruptions") or {}
    turns = config.get("turn_taking") or {}
    allow = interruptions.get("allow")

    return {
        "_source": voice_spec.get("name") if voice_spec else "hardcoded defaults",
        "response_length": {
            "target": length.get("target") or "2-3 sentences per turn",
            "max_seconds": length.get("maxSeconds") or 15,
            "rule": length.get("rule")
            or "If you're about to say more than 3 sentences, STOP and ask a question instead",
        },
        "pacing": {
            "pauses_after_questions": pacing.get("pausesAfterQuestions") or "2-3 seconds - let them think",
            "rushing": pacing.get("silenceRule") or "Never fill silence. Silence is thinking time.",
            "pace_match": pace_match(pacing, personality, thresholds),
        },
        "natural_speech": {
            "use_fillers": speech.get("fillers") or ["So...", "Now...", "Right, so...", "Here's the thing..."],
            "use_backchannels": speech.get("backchannels") or ["Mm-hmm", "I see", "Right", "Got it"],
            "transitions": speech.get("transitions")
            or ["Okay, let's...", "So here's where it gets interesting...", "Now, thinking about..."],
            "confirmations": speech.get("confirmations")
            or ["Does that make sense?", "What do you think?", "Does that track?"],
        },
        "interruptions": {
            "allow": True if allow is None else allow,
            "recovery": interruptions.get("recovery")
            or "If interrupted mid-sentence, acknowledge ('Sure, go ahead') and let them speak. "
               "Don't restart your point - pick up where relevant.",
        },
        "turn_taking": {
            "check_understanding": turns.get("checkUnderstanding")
            or "Every 2-3 exchanges, check in: 'Make sense so far?' or 'What's your take?'",
            "avoid_monologues": turns.get("avoidMonologues")
            or "If you've been talking for 10+ seconds without a question, you're lecturing. Stop and engage.",
            "invitation_phrases": turns.get("invitationPhrases")
            or ["What do you think about that?", "How does that land for you?", "Any questions so far?"],
        },
        # canonical copy lives in _preamble.voiceRules
        "voice_rules": "_preamble.voiceRules",
        "voice_adaptation": voice_adaptations(config.get("voice_adaptation") or {}, personality, thresholds),
    }


@register_transform("computeVoiceGuidance")
def compute_voice_guidance(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    personality = context.loaded_data.get("personality")
    return build_voice_guidance(context.resolved_specs.voice, personality, thresholds_of(context))


__all__ = [
    "build_voice_guidance",
    "compute_voice_guidance",
    "pace_match",
    "voice_adaptations",
]
