"""Conditional blocks.

- ``{{#if path}}...{{/if}}`` keeps its body iff the value is truthy
- ``{{#unless path}}...{{/unless}}`` keeps its body iff the value is falsy

Blocks of the same kind may nest; the innermost block is resolved first.
"""
from __future__ import annotations

import re

from .base import PATH, TemplateContext, TemplateTransformer, compile_directive, is_truthy


def _innermost_block(keyword: str) -> "re.Pattern[str]":
    # Body may not contain another opening of the same keyword.
    return compile_directive(
        r"\{\{#" + keyword + r"\s+(" + PATH + r")\}\}"
        r"((?:(?!\{\{#" + keyword + r"\s).)*?)"
        r"\{\{/" + keyword + r"\}\}"
    )


class _ConditionalBlock(TemplateTransformer):
    keyword = ""
    keep_when_truthy = True

    def __init__(self) -> None:
        self._pattern = _innermost_block(self.keyword)

    def transform(self, content: str, context: TemplateContext) -> str:
        def replace(match: "re.Match[str]") -> str:
            keep = is_truthy(context.lookup(match.group(1))) == self.keep_when_truthy
            context.record_block(kept=keep)
            return match.group(2) if keep else ""

        result = content
        while True:
            updated = self._pattern.sub(replace, result)
            if updated == result:
                return result
            result = updated


class ConditionalProcessor(_ConditionalBlock):
    """Resolve ``{{#if path}}`` blocks."""

    keyword = "if"
    keep_when_truthy = True


class InverseConditionalProcessor(_ConditionalBlock):
    """Resolve ``{{#unless path}}`` blocks."""

    keyword = "unless"
    keep_when_truthy = False


__all__ = ["ConditionalProcessor", "InverseConditionalProcessor"]
