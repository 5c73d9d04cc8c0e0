"""Section activation rules.

Every section names a condition tag in ``activateWhen.condition``. The
evaluator maps the tag to a predicate and returns an
:class:`ActivationResult` whose ``reason`` is one of a closed set of
reason types, each able to describe itself for the run metadata.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from .types import ALL_SOURCES, AssembledContext, SectionDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Always:
    def describe(self) -> str:
        return "Always active"


@dataclass(frozen=True)
class DataFound:
    sources: Tuple[str, ...]

    def describe(self) -> str:
        return f"Data found: {', '.join(self.sources)}"


@dataclass(frozen=True)
class DataMissing:
    sources: Tuple[str, ...]

    def describe(self) -> str:
        return f"No data for: {', '.join(self.sources)}"


@dataclass(frozen=True)
class SpecResolved:
    spec: str
    name: str

    def describe(self) -> str:
        return f"{self.spec.capitalize()} spec resolved: {self.name}"


@dataclass(frozen=True)
class NoSpec:
    spec: str

    def describe(self) -> str:
        return f"No {self.spec} spec in playbook (none)"


@dataclass(frozen=True)
class RelationPresent:
    relation: str
    name: str

    def describe(self) -> str:
        return f"{self.relation.capitalize()}: {self.name}"


@dataclass(frozen=True)
class RelationMissing:
    relation: str

    def describe(self) -> str:
        return f"Caller has no {self.relation} assigned"


@dataclass(frozen=True)
class FirstOccurrence:
    scope: Optional[str] = None

    def describe(self) -> str:
        if self.scope:
            return f"First call in current {self.scope}"
        return "First call for this caller"


@dataclass(frozen=True)
class NotFirstOccurrence:
    scope: Optional[str] = None

    def describe(self) -> str:
        if self.scope:
            return f"Not first call in {self.scope}"
        return "Not first call"


@dataclass(frozen=True)
class Custom:
    tag: str
    detail: str = ""

    def describe(self) -> str:
        if self.detail:
            return f"Custom condition: {self.tag} ({self.detail})"
        return f"Custom condition: {self.tag}"


@dataclass(frozen=True)
class UnknownCondition:
    tag: str

    def describe(self) -> str:
        return f"Unknown condition: {self.tag}"


ActivationReason = Union[
    Always,
    DataFound,
    DataMissing,
    SpecResolved,
    NoSpec,
    RelationPresent,
    RelationMissing,
    FirstOccurrence,
    NotFirstOccurrence,
    Custom,
    UnknownCondition,
]


@dataclass(frozen=True)
class ActivationResult:
    activated: bool
    reason: ActivationReason

    def describe(self) -> str:
        return self.reason.describe()


ConditionFn = Callable[[AssembledContext, SectionDefinition], ActivationResult]

# Tags used by older section files.
LEGACY_ALIASES: Dict[str, str] = {
    "contentSpecExists": "specResolved",
    "callerHasDomain": "entityHasRelation",
    "callCount == 0": "isFirstOccurrence",
    "firstCallInDomain": "isFirstOccurrenceInScope",
}

_CUSTOM_CONDITIONS: Dict[str, Callable[[AssembledContext, SectionDefinition], bool]] = {}


def register_condition(tag: str) -> Callable[[Callable[[AssembledContext, SectionDefinition], bool]], Callable]:
    """Register a boolean predicate for a custom activation tag.

    Example:
        @register_condition("hasOnboarding")
        def has_onboarding(context, section):
            return bool(context.loaded_data.get("onboardingSession"))
    """
    def decorator(func: Callable[[AssembledContext, SectionDefinition], bool]) -> Callable:
        _CUSTOM_CONDITIONS[tag] = func
        return func
    return decorator


def unregister_condition(tag: str) -> None:
    _CUSTOM_CONDITIONS.pop(tag, None)


def source_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def _data_exists(context: AssembledContext, section: SectionDefinition) -> ActivationResult:
    sources = section.activate_when.get("sources") or section.source_names
    if isinstance(sources, str):
        sources = [sources]
    found = []
    missing = []
    for name in sources:
        if name == ALL_SOURCES or source_present(context.loaded_data.get(name)):
            found.append(name)
        else:
            missing.append(name)
    if found:
        return ActivationResult(True, DataFound(tuple(found)))
    return ActivationResult(False, DataMissing(tuple(missing)))


def _spec_resolved(context: AssembledContext, section: SectionDefinition) -> ActivationResult:
    role = str(section.activate_when.get("spec") or "content")
    spec = context.resolved_specs.get(role)
    if spec:
        return ActivationResult(True, SpecResolved(role, str(spec.get("name") or "unnamed")))
    return ActivationResult(False, NoSpec(role))


def _entity_has_relation(context: AssembledContext, section: SectionDefinition) -> ActivationResult:
    relation = str(section.activate_when.get("relation") or "domain")
    target = (context.caller or {}).get(relation)
    if target:
        name = target.get("name") if isinstance(target, Mapping) else str(target)
        return ActivationResult(True, RelationPresent(relation, str(name or relation)))
    return ActivationResult(False, RelationMissing(relation))


def _is_first_occurrence(context: AssembledContext, section: SectionDefinition) -> ActivationResult:
    if context.shared_state.get("is_first_call"):
        return ActivationResult(True, FirstOccurrence())
    return ActivationResult(False, NotFirstOccurrence())


def _is_first_occurrence_in_scope(context: AssembledContext, section: SectionDefinition) -> ActivationResult:
    scope = str(section.activate_when.get("scope") or "domain")
    if context.shared_state.get("is_first_call_in_domain"):
        return ActivationResult(True, FirstOccurrence(scope))
    return ActivationResult(False, NotFirstOccurrence(scope))


BUILTIN_CONDITIONS: Dict[str, ConditionFn] = {
    "always": lambda context, section: ActivationResult(True, Always()),
    "dataExists": _data_exists,
    "specResolved": _spec_resolved,
    "entityHasRelation": _entity_has_relation,
    "isFirstOccurrence": _is_first_occurrence,
    "isFirstOccurrenceInScope": _is_first_occurrence_in_scope,
}


def is_known_condition(tag: str) -> bool:
    tag = LEGACY_ALIASES.get(tag, tag)
    return tag in BUILTIN_CONDITIONS or tag in _CUSTOM_CONDITIONS


def evaluate_activation(
    section: SectionDefinition,
    context: AssembledContext,
    *,
    unknown_policy: str = "open",
) -> ActivationResult:
    """Decide whether ``section`` runs in this context.

    ``unknown_policy`` controls tags nobody recognises: ``open`` (the
    default) lets the section run, ``closed`` makes it inactive so its
    fallback applies.
    """
    tag = section.condition
    canonical = LEGACY_ALIASES.get(tag, tag)

    builtin = BUILTIN_CONDITIONS.get(canonical)
    if builtin is not None:
        return builtin(context, section)

    custom = _CUSTOM_CONDITIONS.get(canonical)
    if custom is not None:
        return ActivationResult(bool(custom(context, section)), Custom(tag))

    if unknown_policy == "open":
        return ActivationResult(True, UnknownCondition(tag))
    logger.warning("Unknown activation condition '%s' on section '%s'; section skipped", tag, section.id)
    return ActivationResult(False, UnknownCondition(tag))


__all__ = [
    "ActivationReason",
    "ActivationResult",
    "Always",
    "BUILTIN_CONDITIONS",
    "Custom",
    "DataFound",
    "DataMissing",
    "FirstOccurrence",
    "LEGACY_ALIASES",
    "NoSpec",
    "NotFirstOccurrence",
    "RelationMissing",
    "RelationPresent",
    "SpecResolved",
    "UnknownCondition",
    "evaluate_activation",
    "is_known_condition",
    "register_condition",
    "source_present",
    "unregister_condition",
]
