"""Loop transformer.

Handles ``{{#each path}}...{{/each}}``:
- ``path`` must resolve to a non-empty list, otherwise the block is dropped
- ``{{this}}`` - current element
- ``{{this.field}}`` - field of the current element (dot-paths allowed)
- ``{{@index}}`` - zero-based position

Iterations are joined by a single newline.
"""
from __future__ import annotations

import re
from typing import Any

from .base import PATH, TemplateContext, TemplateTransformer, compile_directive, resolve_path, stringify


class LoopExpander(TemplateTransformer):
    """Expand ``{{#each}}`` loops against the render data.

    Example:
        Data: {"items": [{"name": "a"}, {"name": "b"}]}
        Template: {{#each items}}{{this.name}},{{/each}}
        Output:
        a,
        b,
    """

    EACH_PATTERN = compile_directive(r"\{\{#each\s+(" + PATH + r")\}\}(.*?)\{\{/each\}\}")
    THIS_FIELD_PATTERN = compile_directive(r"\{\{this\.(" + PATH + r")\}\}")
    THIS_PATTERN = compile_directive(r"\{\{this\}\}")
    INDEX_PATTERN = compile_directive(r"\{\{@index\}\}")

    def transform(self, content: str, context: TemplateContext) -> str:
        def replace(match: "re.Match[str]") -> str:
            items = context.lookup(match.group(1))
            if not isinstance(items, (list, tuple)) or not items:
                context.record_block(kept=False)
                return ""
            context.record_block(kept=True)
            body = match.group(2)
            return "\n".join(self._expand_item(body, item, index) for index, item in enumerate(items))

        return self.EACH_PATTERN.sub(replace, content)

    def _expand_item(self, body: str, item: Any, index: int) -> str:
        result = self.THIS_FIELD_PATTERN.sub(lambda m: stringify(resolve_path(item, m.group(1))), body)
        # Callables in re.sub avoid backslash processing of the replacement.
        item_text = stringify(item)
        result = self.THIS_PATTERN.sub(lambda _m: item_text, result)
        result = self.INDEX_PATTERN.sub(lambda _m: str(index), result)
        return result


__all__ = ["LoopExpander"]
