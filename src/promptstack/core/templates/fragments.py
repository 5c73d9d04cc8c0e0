"""Render a catalogue of per-attribute prompt fragments.

Each catalogue entry carries a template plus the parameter it speaks
about. Rendering binds a small data record built from the measured value,
the parameter description and the subject's memories:

    {{value}}               measured value, two decimals
    {{label}}               "high" | "medium" | "low"
    {{#if high}}...{{/if}}  also ``medium`` / ``low``
    {{param.name}}          also ``id``, ``definition``, ``highLabel``, ``lowLabel``
    {{spec.name}}           also ``slug``, ``domain``, ``outputType``
    {{memories.facts}}      also ``all``, ``preferences``, ``events``, ``topics``,
                            ``relationships``, ``context``
    {{#if hasMemories}}...{{/if}}
    {{caller.id}}
    {{parameters.<id>}}     every known parameter value
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .compiler import render_template

DEFAULT_HIGH_THRESHOLD = 0.7
DEFAULT_MEDIUM_THRESHOLD = 0.3

MEMORY_GROUPS = {
    "facts": "FACT",
    "preferences": "PREFERENCE",
    "events": "EVENT",
    "topics": "TOPIC",
    "relationships": "RELATIONSHIP",
    "context": "CONTEXT",
}


@dataclass(frozen=True)
class FragmentTemplate:
    """One catalogue entry."""

    id: str
    slug: str
    name: str
    template: str
    priority: int = 0
    domain: Optional[str] = None
    output_type: str = "MEASURE"
    parameter: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FragmentTemplate":
        return cls(
            id=str(raw.get("id") or raw.get("slug") or ""),
            slug=str(raw.get("slug") or raw.get("id") or ""),
            name=str(raw.get("name") or raw.get("slug") or ""),
            template=str(raw.get("template") or raw.get("promptTemplate") or ""),
            priority=int(raw.get("priority") or 0),
            domain=raw.get("domain"),
            output_type=str(raw.get("outputType") or "MEASURE"),
            parameter=raw.get("parameter"),
        )


@dataclass
class FragmentContext:
    """Values shared by every fragment in one composition."""

    value: Optional[float] = None
    parameter_id: Optional[str] = None
    caller_id: Optional[str] = None
    parameter_values: Dict[str, float] = field(default_factory=dict)
    memories: Optional[List[Mapping[str, Any]]] = None


@dataclass(frozen=True)
class CompiledFragment:
    fragment_id: str
    slug: str
    name: str
    output_type: str
    domain: Optional[str]
    rendered: str
    template_used: str
    value: Optional[float] = None
    label: str = ""
    parameter_id: Optional[str] = None
    parameter_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fragmentId": self.fragment_id,
            "slug": self.slug,
            "name": self.name,
            "outputType": self.output_type,
            "domain": self.domain,
            "rendered": self.rendered,
            "templateUsed": self.template_used,
            "context": {
                "value": self.value,
                "label": self.label,
                "parameterId": self.parameter_id,
                "parameterName": self.parameter_name,
            },
        }


@dataclass
class FragmentComposition:
    fragments: List[CompiledFragment]
    total_templates: int
    templates_with_content: int
    memories_included: int
    composed_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fragments": [f.to_dict() for f in self.fragments],
            "totalTemplates": self.total_templates,
            "templatesWithContent": self.templates_with_content,
            "memoriesIncluded": self.memories_included,
            "composedAt": self.composed_at,
        }


def value_label(
    value: Optional[float],
    *,
    high: float = DEFAULT_HIGH_THRESHOLD,
    medium: float = DEFAULT_MEDIUM_THRESHOLD,
) -> str:
    if value is None:
        return ""
    if value >= high:
        return "high"
    if value >= medium:
        return "medium"
    return "low"


def _value_flags(value: Optional[float], high: float, medium: float) -> Dict[str, Any]:
    return {
        "value": f"{value:.2f}" if value is not None else "",
        "label": value_label(value, high=high, medium=medium),
        "high": value is not None and value >= high,
        "medium": value is not None and medium <= value < high,
        "low": value is not None and value < medium,
    }


def group_memories(memories: Optional[Sequence[Mapping[str, Any]]]) -> Dict[str, List[Mapping[str, Any]]]:
    items = list(memories or [])
    grouped: Dict[str, List[Mapping[str, Any]]] = {"all": items}
    for group, category in MEMORY_GROUPS.items():
        grouped[group] = [m for m in items if m.get("category") == category]
    return grouped


def build_fragment_data(
    fragment: FragmentTemplate,
    value: Optional[float],
    parameter_id: Optional[str],
    context: FragmentContext,
    *,
    high: float = DEFAULT_HIGH_THRESHOLD,
    medium: float = DEFAULT_MEDIUM_THRESHOLD,
) -> Dict[str, Any]:
    parameter = fragment.parameter
    if parameter:
        param = {
            "id": parameter.get("parameterId") or parameter_id or "",
            "name": parameter.get("name") or "",
            "definition": parameter.get("definition") or "",
            "highLabel": parameter.get("interpretationHigh") or "High",
            "lowLabel": parameter.get("interpretationLow") or "Low",
        }
    else:
        param = {
            "id": parameter_id or "",
            "name": "",
            "definition": "",
            "highLabel": "High",
            "lowLabel": "Low",
        }

    data = _value_flags(value, high, medium)
    data.update(
        {
            "spec": {
                "name": fragment.name,
                "slug": fragment.slug,
                "domain": fragment.domain or "",
                "outputType": fragment.output_type,
            },
            "param": param,
            "memories": group_memories(context.memories),
            "hasMemories": bool(context.memories),
            "caller": {"id": context.caller_id or "", "name": ""},
            "parameters": dict(context.parameter_values),
        }
    )
    return data


def _catalogue_order(fragment: FragmentTemplate) -> tuple:
    return (-fragment.priority, fragment.domain or "", fragment.name)


def compose_fragments(
    catalogue: Sequence[FragmentTemplate],
    context: FragmentContext,
    first_only: bool = False,
    *,
    high: float = DEFAULT_HIGH_THRESHOLD,
    medium: float = DEFAULT_MEDIUM_THRESHOLD,
) -> FragmentComposition:
    """Render every catalogue template and keep the non-empty results.

    Templates are visited by priority (highest first), then domain, then
    name. A template whose render is empty or whitespace-only is skipped.
    With ``first_only`` the scan stops at the first non-empty render.
    """
    ordered = sorted(catalogue, key=_catalogue_order)
    compiled: List[CompiledFragment] = []

    for fragment in ordered:
        if not fragment.template:
            continue
        parameter = fragment.parameter or {}
        parameter_id = context.parameter_id or parameter.get("parameterId")
        if context.value is not None:
            value = context.value
        elif parameter_id:
            value = context.parameter_values.get(parameter_id)
        else:
            value = None

        data = build_fragment_data(fragment, value, parameter_id, context, high=high, medium=medium)
        rendered = render_template(fragment.template, data)
        if not rendered.strip():
            continue

        compiled.append(
            CompiledFragment(
                fragment_id=fragment.id,
                slug=fragment.slug,
                name=fragment.name,
                output_type=fragment.output_type,
                domain=fragment.domain,
                rendered=rendered,
                template_used=fragment.template,
                value=value,
                label=data["label"],
                parameter_id=parameter_id,
                parameter_name=parameter.get("name"),
            )
        )
        if first_only:
            break

    return FragmentComposition(
        fragments=compiled,
        total_templates=len(ordered),
        templates_with_content=sum(1 for f in ordered if f.template),
        memories_included=len(context.memories or []),
        composed_at=datetime.now(timezone.utc).isoformat(),
    )


def compile_template(
    template: str,
    *,
    value: Optional[float] = None,
    parameter_name: str = "",
    parameter_definition: str = "",
    high_label: str = "High",
    low_label: str = "Low",
    memories: Optional[List[Mapping[str, Any]]] = None,
    user_name: str = "",
    high: float = DEFAULT_HIGH_THRESHOLD,
    medium: float = DEFAULT_MEDIUM_THRESHOLD,
) -> str:
    """Render a single template for preview, without a catalogue."""
    grouped = group_memories(memories)
    data = _value_flags(value, high, medium)
    data.update(
        {
            "param": {
                "name": parameter_name,
                "definition": parameter_definition,
                "highLabel": high_label or "High",
                "lowLabel": low_label or "Low",
            },
            "memories": {
                "all": grouped["all"],
                "facts": grouped["facts"],
                "preferences": grouped["preferences"],
            },
            "hasMemories": bool(memories),
            "user": {"name": user_name},
        }
    )
    return render_template(template, data)


__all__ = [
    "CompiledFragment",
    "FragmentComposition",
    "FragmentContext",
    "FragmentTemplate",
    "build_fragment_data",
    "compile_template",
    "compose_fragments",
    "group_memories",
    "value_label",
]
