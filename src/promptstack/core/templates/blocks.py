"""Scoped section blocks: ``{{#name}}...{{/name}}``.

The block name is a dot-path into the data (``if``/``unless``/``each`` are
reserved and handled by later steps). What happens to the body depends on
the resolved value:

- falsy: the block is dropped
- list: the body repeats once per element (joined by newlines); a mapping
  element's fields are usable unqualified inside its repetition
- mapping: its fields are usable unqualified inside the body, shadowing
  outer names
- any other truthy value: the body is kept as-is

Nested section blocks are expanded recursively with the merged scope.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Mapping

from .base import (
    PATH,
    TemplateContext,
    TemplateTransformer,
    compile_directive,
    is_truthy,
    resolve_path,
    stringify,
)

SECTION_PATTERN = compile_directive(
    r"\{\{#(?!if\s|unless\s|each\s)(" + PATH + r")\}\}(.*?)\{\{/\1\}\}"
)

# Bare single-segment names inside a scoped body.
SCOPED_NAME_PATTERN = compile_directive(r"\{\{(\w+)\}\}")


class SectionBlockExpander(TemplateTransformer):
    """Expand Mustache-style section blocks.

    Example:
        Data: {"param": {"name": "warmth", "highLabel": "Warm"}}
        Template: {{#param}}{{name}} ({{highLabel}}){{/param}}
        Output: warmth (Warm)
    """

    def transform(self, content: str, context: TemplateContext) -> str:
        return self._expand(content, context.data, context)

    def _expand(self, content: str, scope: Mapping[str, Any], context: TemplateContext) -> str:
        def replace(match: "re.Match[str]") -> str:
            path, body = match.group(1), match.group(2)
            value = resolve_path(scope, path)
            if not is_truthy(value):
                context.record_block(kept=False)
                return ""
            context.record_block(kept=True)

            if isinstance(value, (list, tuple)):
                return "\n".join(self._render_item(body, item, scope, context) for item in value)

            if isinstance(value, Mapping):
                scoped = self._bind_names(body, value, scope)
                return self._expand(scoped, _merge_scope(scope, value), context)

            return body

        return SECTION_PATTERN.sub(replace, content)

    def _render_item(
        self,
        body: str,
        item: Any,
        scope: Mapping[str, Any],
        context: TemplateContext,
    ) -> str:
        if not isinstance(item, Mapping):
            return body

        def bind(match: "re.Match[str]") -> str:
            name = match.group(1)
            if name in item:
                return stringify(item[name])
            return match.group(0)

        bound = SCOPED_NAME_PATTERN.sub(bind, body)
        return self._expand(bound, _merge_scope(scope, item), context)

    def _bind_names(self, body: str, section: Mapping[str, Any], scope: Mapping[str, Any]) -> str:
        def bind(match: "re.Match[str]") -> str:
            name = match.group(1)
            if name in section:
                return stringify(section[name])
            if name in scope:
                return stringify(scope[name])
            return match.group(0)

        return SCOPED_NAME_PATTERN.sub(bind, body)


def _merge_scope(outer: Mapping[str, Any], inner: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(outer)
    merged.update(inner)
    return merged


__all__ = ["SectionBlockExpander", "SECTION_PATTERN"]
