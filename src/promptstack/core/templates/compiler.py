"""Template compiler: template string + data record -> rendered text.

The compiler holds no per-render state; every call builds its own
TemplateContext, so one instance is safe to share between threads.

Transformation Pipeline (7 steps):
1. SECTION BLOCKS - {{#name}}...{{/name}}
2. CONDITIONALS   - {{#if path}}...{{/if}}
3. INVERSE        - {{#unless path}}...{{/unless}}
4. LOOPS          - {{#each path}}...{{/each}}
5. VARIABLES      - {{dot.path}}
6. CLEANUP        - remove unresolved {{...}}
7. WHITESPACE     - collapse 3+ newlines, strip
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .base import TemplateContext, TemplatePipeline
from .blocks import SectionBlockExpander
from .cleanup import DirectiveCleanup, WhitespaceNormalizer
from .conditionals import ConditionalProcessor, InverseConditionalProcessor
from .loops import LoopExpander
from .variables import VariableSubstituter

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Rendered text plus the tracking collected while producing it."""

    text: str
    variables_resolved: list
    variables_missing: list
    blocks_expanded: int = 0
    blocks_dropped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "variablesResolved": list(self.variables_resolved),
            "variablesMissing": list(self.variables_missing),
            "blocksExpanded": self.blocks_expanded,
            "blocksDropped": self.blocks_dropped,
        }


class TemplateCompiler:
    """7-step template renderer.

    Usage:
        compiler = TemplateCompiler()
        text = compiler.render("{{#if name}}Hi {{name}}{{/if}}", {"name": "Ada"})
    """

    def __init__(self) -> None:
        self.pipeline = self._build_pipeline()

    def _build_pipeline(self) -> TemplatePipeline:
        return TemplatePipeline([
            SectionBlockExpander(),
            ConditionalProcessor(),
            InverseConditionalProcessor(),
            LoopExpander(),
            VariableSubstituter(),
            DirectiveCleanup(),
            WhitespaceNormalizer(),
        ])

    def render(self, template: Optional[str], data: Optional[Mapping[str, Any]] = None) -> str:
        return self.render_with_report(template, data).text

    def render_with_report(
        self,
        template: Optional[str],
        data: Optional[Mapping[str, Any]] = None,
    ) -> RenderResult:
        """Render ``template`` and return the text with tracking info.

        Never raises: a malformed template degrades to whatever the
        cleanup steps leave behind.
        """
        if not template:
            return RenderResult(text="", variables_resolved=[], variables_missing=[])

        context = TemplateContext(data=data if isinstance(data, Mapping) else {})
        text = self.pipeline.execute(template, context)
        if context.variables_missing:
            logger.debug("Template variables missing: %s", sorted(context.variables_missing))

        tracked = context.to_dict()
        return RenderResult(
            text=text,
            variables_resolved=tracked["variablesResolved"],
            variables_missing=tracked["variablesMissing"],
            blocks_expanded=context.blocks_expanded,
            blocks_dropped=context.blocks_dropped,
        )


_DEFAULT_COMPILER = TemplateCompiler()


def render_template(template: Optional[str], data: Optional[Mapping[str, Any]] = None) -> str:
    """Render ``template`` against ``data`` with the shared compiler."""
    return _DEFAULT_COMPILER.render(template, data)


def render_with_report(
    template: Optional[str],
    data: Optional[Mapping[str, Any]] = None,
) -> RenderResult:
    return _DEFAULT_COMPILER.render_with_report(template, data)


__all__ = ["RenderResult", "TemplateCompiler", "render_template", "render_with_report"]
