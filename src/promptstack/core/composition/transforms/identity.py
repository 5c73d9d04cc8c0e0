"""WHO the agent is (identity spec) and WHAT it teaches (content spec)."""
from __future__ import annotations

from typing import Any, Dict, Optional

from .common import spec_config
from .registry import register_transform


def role_statement(config: Dict[str, Any]) -> Optional[str]:
    return config.get("roleStatement") or (config.get("tutor_role") or {}).get("roleStatement")


@register_transform("extractIdentitySpec")
def extract_identity_spec(raw: Any, context: Any, section: Any) -> Optional[Dict[str, Any]]:
    identity = context.resolved_specs.identity
    if not identity:
        return None
    config = spec_config(identity)
    domain_name = (context.caller_domain or {}).get("name")

    name = identity.get("name") or ""
    if "generic" in name.lower() and domain_name:
        name = f"{domain_name} Tutor Identity"

    has_structure = config.get("opening") or config.get("main") or config.get("closing")
    has_assessment = config.get("principles") or config.get("methods")

    return {
        "specName": name,
        "domain": domain_name,
        "description": identity.get("description"),
        "role": role_statement(config),
        "primaryGoal": config.get("primaryGoal"),
        "secondaryGoals": config.get("secondaryGoals") or [],
        "techniques": [
            {"name": t.get("name"), "description": t.get("description"), "when": t.get("when")}
            for t in config.get("techniques") or []
        ],
        "styleDefaults": config.get("defaults"),
        "styleGuidelines": config.get("styleGuidelines") or [],
        "responsePatterns": config.get("patterns"),
        "boundaries": {
            "does": config.get("does") or [],
            "doesNot": config.get("doesNot") or [],
        },
        "sessionStructure": {
            "opening": config.get("opening"),
            "main": config.get("main"),
            "closing": config.get("closing"),
        } if has_structure else None,
        "assessmentApproach": {
            "principles": config.get("principles") or [],
            "methods": config.get("methods") or [],
        } if has_assessment else None,
    }


@register_transform("extractContentSpec")
def extract_content_spec(raw: Any, context: Any, section: Any) -> Optional[Dict[str, Any]]:
    content = context.resolved_specs.content
    if not content:
        return None
    config = spec_config(content)
    raw_modules = config.get("modules") or (config.get("curriculum") or {}).get("modules") or []

    return {
        "specName": content.get("name"),
        "description": content.get("description"),
        "curriculumName": (config.get("curriculum") or {}).get("name") or config.get("name"),
        "curriculumDescription": config.get("description"),
        "targetAudience": config.get("targetAudience"),
        "learningObjectives": config.get("learningObjectives") or [],
        "modules": [
            {
                "id": m.get("id"),
                "slug": m.get("slug") or m.get("id"),
                "name": m.get("name"),
                "description": m.get("description"),
                "prerequisites": m.get("prerequisites") or [],
                "concepts": m.get("concepts") or [],
                "learningOutcomes": m.get("learningOutcomes") or [],
                "sortOrder": m.get("sortOrder"),
                "masteryThreshold": m.get("masteryThreshold"),
            }
            for m in raw_modules
        ],
        "totalModules": len(raw_modules),
        "conceptLibrary": config.get("concepts"),
        "deliveryRules": {
            "pacing": config.get("pacing"),
            "sequencing": config.get("sequencing"),
            "personalization": config.get("personalization"),
            "practiceRatio": config.get("practiceRatio"),
        },
        "activityTypes": config.get("activityTypes") or [],
        "assessmentCriteria": {
            "comprehension": config.get("comprehensionIndicators") or [],
            "application": config.get("applicationIndicators") or [],
            "mastery": config.get("masteryIndicators") or [],
        },
    }


__all__ = ["extract_content_spec", "extract_identity_spec", "role_statement"]
