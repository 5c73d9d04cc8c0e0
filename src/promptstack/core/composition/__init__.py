"""Declarative section pipeline that composes a prompt document.

Entry points:
    CompositionExecutor(sections).execute(loaded_data)
    CompositionExecutor(sections).compose(subject_id, loader)
"""
from __future__ import annotations

from .activation import ActivationResult, evaluate_activation, register_condition, unregister_condition
from .executor import CompositionExecutor, execute_composition
from .fallback import apply_fallback
from .loaders import DataLoader, LoaderRegistry, StaticLoader
from .resolver import GraphIssue, SectionGraphReport, resolve_order, validate_section_graph
from .sections import default_sections, load_sections, parse_sections
from .summary import build_agent_identity_summary, build_caller_context, render_prompt_summary
from .transforms import TransformRegistry, default_registry, get_transform, register_transform, run_transform_chain
from .types import MISSING, AssembledContext, CompositionResult, ResolvedSpecs, SectionDefinition

__all__ = [
    "ActivationResult",
    "AssembledContext",
    "CompositionExecutor",
    "CompositionResult",
    "DataLoader",
    "GraphIssue",
    "LoaderRegistry",
    "MISSING",
    "ResolvedSpecs",
    "SectionDefinition",
    "SectionGraphReport",
    "StaticLoader",
    "TransformRegistry",
    "apply_fallback",
    "build_agent_identity_summary",
    "build_caller_context",
    "default_registry",
    "default_sections",
    "evaluate_activation",
    "execute_composition",
    "get_transform",
    "load_sections",
    "parse_sections",
    "register_condition",
    "register_transform",
    "render_prompt_summary",
    "resolve_order",
    "run_transform_chain",
    "unregister_condition",
    "validate_section_graph",
]
