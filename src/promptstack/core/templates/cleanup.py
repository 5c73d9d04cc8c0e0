"""Final passes: drop unresolved directives, then normalise whitespace."""
from __future__ import annotations

import re

from .base import TemplateContext, TemplateTransformer

LEFTOVER_PATTERN = re.compile(r"\{\{[^}]+\}\}")
BLANK_RUN_PATTERN = re.compile(r"\n{3,}")


class DirectiveCleanup(TemplateTransformer):
    """Delete any ``{{...}}`` token that earlier steps left behind."""

    def transform(self, content: str, context: TemplateContext) -> str:
        return LEFTOVER_PATTERN.sub("", content)


class WhitespaceNormalizer(TemplateTransformer):
    """Collapse 3+ consecutive newlines to 2 and trim the result."""

    def transform(self, content: str, context: TemplateContext) -> str:
        return BLANK_RUN_PATTERN.sub("\n\n", content).strip()


__all__ = ["DirectiveCleanup", "WhitespaceNormalizer", "LEFTOVER_PATTERN"]
