"""Content trust section: source authority header, trust rules, reference card.

Sources come from ``config.sourceAuthority`` on the content spec. When the
content spec declares none, subject sources are used instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..shared_state import parse_timestamp
from .common import as_records, current_module, spec_config
from .registry import register_transform

DEFAULT_WARNING_DAYS = 60

TRUST_LEVELS: Dict[str, Dict[str, Any]] = {
    "REGULATORY_STANDARD": {"label": "Regulatory Standard", "level": 5},
    "ACCREDITED_MATERIAL": {"label": "Accredited Material", "level": 4},
    "PUBLISHED_REFERENCE": {"label": "Published Reference", "level": 3},
    "EXPERT_CURATED": {"label": "Expert Curated", "level": 2},
    "AI_ASSISTED": {"label": "AI Assisted", "level": 1},
    "UNVERIFIED": {"label": "Unverified", "level": 0},
}


@dataclass(frozen=True)
class FreshnessWarning:
    message: str
    severity: str  # expired | expiring

    def with_prefix(self, prefix: str) -> "FreshnessWarning":
        return FreshnessWarning(f"{prefix}{self.message}", self.severity)

    def to_dict(self) -> Dict[str, str]:
        return {"message": self.message, "severity": self.severity}

    def render(self) -> str:
        tag = "EXPIRED" if self.severity == "expired" else "EXPIRING"
        return f"  [{tag}] {self.message}"


def trust_label(level: Optional[str], *, upper: bool = False) -> str:
    info = TRUST_LEVELS.get(str(level))
    if info is None:
        return str(level)
    return info["label"].upper() if upper else info["label"]


def check_freshness(
    valid_until: Any,
    warning_days: int = DEFAULT_WARNING_DAYS,
    *,
    now: Optional[datetime] = None,
) -> Optional[FreshnessWarning]:
    expiry = parse_timestamp(valid_until)
    if expiry is None:
        return None
    current = now or datetime.now(timezone.utc)
    days = (expiry - current).days
    shown = valid_until if isinstance(valid_until, str) else expiry.date().isoformat()
    if days < 0:
        return FreshnessWarning(f"Content expired {abs(days)} days ago ({shown})", "expired")
    if days <= warning_days:
        return FreshnessWarning(f"Content expires in {days} days ({shown})", "expiring")
    return None


def build_trust_rules(primary: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not primary:
        return None
    source_name = primary.get("name") or primary.get("slug")
    return "\n".join([
        "TRUST RULES:",
        "1. ONLY teach facts from your certified sources. When stating specific figures, cite the source.",
        f'2. If asked about something NOT in your materials, say: "That\'s outside what I can verify '
        f'from the {source_name}. I\'d recommend checking the official source directly."',
        "3. NEVER invent statistics, thresholds, or regulatory details.",
        '4. If content may be outdated, flag it: "This information may have been updated — '
        'always verify current figures."',
    ])


def build_reference_card(module: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if not module:
        return None
    module_content = module.get("content") or module
    refs = as_records(module_content.get("sourceRefs") or module.get("sourceRefs"))
    if not refs:
        return None
    lines = [f"REFERENCE CARD ({module.get('name') or module.get('title') or module.get('id')}):"]
    for ref in refs:
        lines.append(f"  Source: {ref.get('sourceSlug')} [{trust_label(ref.get('trustLevel'))}] — {ref.get('ref')}")
    return {"card": "\n".join(lines), "sourceRefs": refs}


def _validity_lines(warnings: List[FreshnessWarning], *, leading_newline: bool) -> List[str]:
    if not warnings:
        return []
    header = "\nVALIDITY WARNINGS:" if leading_newline else "VALIDITY WARNINGS:"
    return [header] + [w.render() for w in warnings]


def empty_trust_context() -> Dict[str, Any]:
    return {
        "hasTrustData": False,
        "trustLevel": None,
        "primarySource": None,
        "secondarySources": [],
        "contentAuthority": None,
        "trustRules": None,
        "referenceCard": None,
        "referenceSourceRefs": [],
        "freshnessWarnings": [],
    }


def spec_trust_context(
    content_spec: Mapping[str, Any],
    authority: Mapping[str, Any],
    module: Optional[Mapping[str, Any]],
    warning_days: int,
) -> Dict[str, Any]:
    primary = authority.get("primarySource")
    secondaries = as_records(authority.get("secondarySources"))

    lines = ["## CONTENT AUTHORITY\n"]
    if content_spec.get("name"):
        lines.append(f"You are teaching CERTIFIED MATERIALS for {content_spec['name']}.\n")

    if primary:
        lines.append(f"PRIMARY SOURCE: {primary.get('name') or primary.get('slug')} [{trust_label(primary.get('trustLevel'), upper=True)}]")
        if primary.get("publisherOrg"):
            lines.append(f"  Publisher: {primary['publisherOrg']}")
        if primary.get("_accreditingBody"):
            ref = f" ({primary['_accreditationRef']})" if primary.get("_accreditationRef") else ""
            lines.append(f"  Accrediting Body: {primary['_accreditingBody']}{ref}")
        if primary.get("qualificationRef"):
            lines.append(f"  Qualification: {primary['qualificationRef']}")

    for src in secondaries:
        authors = f" ({', '.join(src['authors'])})" if src.get("authors") else ""
        edition = f", {src['edition']}" if src.get("edition") else ""
        lines.append(f"SECONDARY: {src.get('name') or src.get('slug')}{authors}{edition} [{trust_label(src.get('trustLevel'), upper=True)}]")

    warnings: List[FreshnessWarning] = []
    if primary:
        warning = check_freshness(primary.get("_validUntil") or primary.get("validUntil"), warning_days)
        if warning:
            warnings.append(warning.with_prefix(f'Primary source "{primary.get("name") or primary.get("slug")}": '))
    for src in secondaries:
        warning = check_freshness(src.get("_validUntil") or src.get("validUntil"), warning_days)
        if warning:
            warnings.append(warning.with_prefix(f'Secondary source "{src.get("name") or src.get("slug")}": '))

    if module:
        module_content = module.get("content") or module
        points = module_content.get("points") or module_content.get("content") or []
        for point in points if isinstance(points, list) else []:
            if isinstance(point, Mapping) and point.get("validUntil"):
                warning = check_freshness(point["validUntil"], warning_days)
                if warning:
                    text = str(point.get("text") or point.get("title") or "(content point)")
                    warnings.append(warning.with_prefix(f'"{text[:60]}..." — '))

    lines.extend(_validity_lines(warnings, leading_newline=True))
    card = build_reference_card(module)

    return {
        "hasTrustData": True,
        "trustLevel": (primary or {}).get("trustLevel"),
        "primarySource": primary,
        "secondarySources": secondaries,
        "contentAuthority": "\n".join(lines),
        "trustRules": build_trust_rules(primary),
        "referenceCard": card["card"] if card else None,
        "referenceSourceRefs": card["sourceRefs"] if card else [],
        "freshnessWarnings": [w.to_dict() for w in warnings],
    }


def subject_trust_context(subjects: List[Mapping[str, Any]], warning_days: int) -> Dict[str, Any]:
    lines = ["## CONTENT AUTHORITY\n"]
    warnings: List[FreshnessWarning] = []
    primary: Optional[Dict[str, Any]] = None
    secondaries: List[Dict[str, Any]] = []

    for subject in subjects:
        lines.append(f"SUBJECT: {subject.get('name')}")
        if subject.get("qualificationRef"):
            lines.append(f"  Qualification: {subject['qualificationRef']}")

        sources = as_records(subject.get("sources"))
        syllabus = [s for s in sources if "syllabus" in (s.get("tags") or [])]
        others = [s for s in sources if "syllabus" not in (s.get("tags") or [])]

        for src in syllabus:
            lines.append(f"  PRIMARY SOURCE: {src.get('name')} [{trust_label(src.get('trustLevel'), upper=True)}]")
            if src.get("publisherOrg"):
                lines.append(f"    Publisher: {src['publisherOrg']}")
            if src.get("accreditingBody"):
                lines.append(f"    Accrediting Body: {src['accreditingBody']}")
            if primary is None:
                primary = {
                    "slug": src.get("slug"),
                    "name": src.get("name"),
                    "trustLevel": src.get("trustLevel"),
                    "publisherOrg": src.get("publisherOrg"),
                    "qualificationRef": src.get("qualificationRef"),
                }
            warning = check_freshness(src.get("validUntil"), warning_days)
            if warning:
                warnings.append(warning.with_prefix(f'"{src.get("name")}": '))

        for src in others:
            tag_label = "/".join(str(t).upper() for t in src.get("tags") or []) or "CONTENT"
            lines.append(f"  {tag_label}: {src.get('name')} [{trust_label(src.get('trustLevel'), upper=True)}]")
            secondaries.append({
                "slug": src.get("slug"),
                "name": src.get("name"),
                "trustLevel": src.get("trustLevel"),
                "publisherOrg": src.get("publisherOrg"),
                "qualificationRef": src.get("qualificationRef"),
            })
            warning = check_freshness(src.get("validUntil"), warning_days)
            if warning:
                warnings.append(warning.with_prefix(f'"{src.get("name")}": '))

        modules = ((subject.get("curriculum") or {}).get("notableInfo") or {}).get("modules")
        if modules:
            lines.append(f"\n  CURRICULUM ({len(modules)} modules):")
            for mod in modules:
                lines.append(f"    {mod.get('id')}: {mod.get('title')}")
                outcomes = mod.get("learningOutcomes") or []
                for outcome in outcomes[:3]:
                    lines.append(f"      - {outcome}")
                if len(outcomes) > 3:
                    lines.append(f"      ... and {len(outcomes) - 3} more")

        lines.append("")

    lines.extend(_validity_lines(warnings, leading_newline=False))

    return {
        "hasTrustData": True,
        "trustLevel": (primary or {}).get("trustLevel") or subjects[0].get("defaultTrustLevel"),
        "primarySource": primary,
        "secondarySources": secondaries,
        "contentAuthority": "\n".join(lines),
        "trustRules": build_trust_rules(primary),
        "referenceCard": None,
        "referenceSourceRefs": [],
        "freshnessWarnings": [w.to_dict() for w in warnings],
    }


@register_transform("computeTrustContext")
def compute_trust_context(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    content_spec = context.resolved_specs.content or {}
    authority = spec_config(content_spec).get("sourceAuthority")
    warning_days = int(context.spec_config.get("freshnessWarningDays", DEFAULT_WARNING_DAYS))

    if authority:
        return spec_trust_context(content_spec, authority, current_module(context), warning_days)

    subjects = as_records((context.loaded_data.get("subjectSources") or {}).get("subjects"))
    if subjects:
        return subject_trust_context(subjects, warning_days)
    return empty_trust_context()


__all__ = [
    "FreshnessWarning",
    "TRUST_LEVELS",
    "build_reference_card",
    "build_trust_rules",
    "check_freshness",
    "compute_trust_context",
    "empty_trust_context",
    "trust_label",
]
