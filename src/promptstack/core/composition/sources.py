"""Resolve a section's ``dataSource`` against the loaded bag."""
from __future__ import annotations

from typing import Any, Callable, Dict

from .types import ALL_SOURCES, MISSING, AssembledContext, SectionDefinition

# Names that are derived from the context instead of read from the bag.
DERIVED_SOURCES: Dict[str, Callable[[AssembledContext], Any]] = {
    "callerDomain": lambda context: context.caller_domain,
    "contentSpec": lambda context: context.resolved_specs.content,
}


def resolve_data_source(section: SectionDefinition, context: AssembledContext) -> Any:
    """Return the raw input for ``section``.

    - ``_assembled``: the context itself
    - list of names: a dict with one entry per name
    - single name: the loaded value, or ``MISSING`` when absent
    """
    source = section.data_source
    if isinstance(source, tuple):
        return {name: _lookup(name, context, default=None) for name in source}
    if source == ALL_SOURCES:
        return context
    return _lookup(source, context, default=MISSING)


def _lookup(name: str, context: AssembledContext, *, default: Any) -> Any:
    derived = DERIVED_SOURCES.get(name)
    if derived is not None:
        return derived(context)
    if name in context.loaded_data:
        return context.loaded_data[name]
    return default


def collect_dependencies(section: SectionDefinition, context: AssembledContext, by_id: Dict[str, SectionDefinition]) -> Dict[str, Any]:
    """Outputs of the sections ``section`` depends on, keyed by output key."""
    collected: Dict[str, Any] = {}
    for dep_id in section.depends_on:
        dep = by_id.get(dep_id)
        if dep is None:
            continue
        if dep.output_key in context.sections:
            collected[dep.output_key] = context.sections[dep.output_key]
    return collected


__all__ = ["DERIVED_SOURCES", "collect_dependencies", "resolve_data_source"]
