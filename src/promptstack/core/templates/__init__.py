"""Mustache-like template compiler for prompt fragments.

``render_template`` is the production entry point and never raises.
``validate_template`` is the strict authoring-time check.
"""
from __future__ import annotations

from .base import TemplateContext, TemplatePipeline, TemplateTransformer, is_truthy, resolve_path, stringify
from .compiler import RenderResult, TemplateCompiler, render_template, render_with_report
from .fragments import (
    CompiledFragment,
    FragmentComposition,
    FragmentContext,
    FragmentTemplate,
    compile_template,
    compose_fragments,
    value_label,
)
from .validator import TemplateIssue, TemplateValidationReport, validate_template

__all__ = [
    "CompiledFragment",
    "FragmentComposition",
    "FragmentContext",
    "FragmentTemplate",
    "RenderResult",
    "TemplateCompiler",
    "TemplateContext",
    "TemplateIssue",
    "TemplatePipeline",
    "TemplateTransformer",
    "TemplateValidationReport",
    "compile_template",
    "compose_fragments",
    "is_truthy",
    "render_template",
    "render_with_report",
    "resolve_path",
    "stringify",
    "validate_template",
    "value_label",
]
