"""Personality and learner-profile sections."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..types import MISSING
from .common import classify, thresholds_of
from .registry import register_transform

TRAITS = ("openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism")

# (high, low, moderate)
TRAIT_DESCRIPTIONS: Dict[str, tuple] = {
    "openness": (
        "Open to new experiences, curious, creative",
        "Prefers routine, practical, conventional",
        "Balanced between tradition and novelty",
    ),
    "conscientiousness": (
        "Organized, reliable, goal-oriented",
        "Flexible, spontaneous, adaptable",
        "Balances planning with flexibility",
    ),
    "extraversion": (
        "Outgoing, energetic, talkative",
        "Reserved, reflective, quiet",
        "Comfortable in both social and solitary settings",
    ),
    "agreeableness": (
        "Cooperative, trusting, helpful",
        "Direct, skeptical, competitive",
        "Balanced between cooperation and assertiveness",
    ),
    "neuroticism": (
        "Emotionally sensitive, may need reassurance",
        "Emotionally stable, calm under pressure",
        "Generally stable with normal emotional range",
    ),
}

LEARNER_PROFILE_FIELDS = (
    "learningStyle",
    "pacePreference",
    "interactionStyle",
    "preferredModality",
    "questionFrequency",
    "feedbackStyle",
)


def describe_trait(trait: str, score: Optional[float], thresholds: Mapping[str, float]) -> str:
    high, low, moderate = TRAIT_DESCRIPTIONS[trait]
    if score is not None and score >= thresholds["high"]:
        return high
    if score is not None and score <= thresholds["low"]:
        return low
    return moderate


@register_transform("mapPersonalityTraits")
def map_personality_traits(raw: Any, context: Any, section: Any) -> Optional[Dict[str, Any]]:
    if not raw or raw is MISSING:
        return None
    thresholds = thresholds_of(context)
    traits = {}
    for trait in TRAITS:
        score = raw.get(trait)
        traits[trait] = {
            "score": score,
            "level": classify(score, context),
            "description": describe_trait(trait, score, thresholds),
        }
    return {
        "traits": traits,
        "preferences": {
            "tone": raw.get("preferredTone"),
            "responseLength": raw.get("preferredLength"),
            "technicalLevel": raw.get("technicalLevel"),
        },
        "confidence": raw.get("confidenceScore"),
    }


@register_transform("mapLearnerProfile")
def map_learner_profile(raw: Any, context: Any, section: Any) -> Optional[Dict[str, Any]]:
    """Learner profile, or None when nothing about the learner is known yet."""
    if not raw or raw is MISSING:
        return None
    prior_knowledge = raw.get("priorKnowledge") or {}
    if not any(raw.get(name) for name in LEARNER_PROFILE_FIELDS) and not prior_knowledge:
        return None
    profile = {name: raw.get(name) for name in LEARNER_PROFILE_FIELDS}
    profile["priorKnowledge"] = prior_knowledge
    profile["lastUpdated"] = raw.get("lastUpdated")
    return profile


__all__ = ["TRAITS", "describe_trait", "map_learner_profile", "map_personality_traits"]
