"""Variable interpolation: ``{{dot.path}}``.

Missing or null values render as the empty string; mappings and lists as
compact JSON; everything else through :func:`stringify`.
"""
from __future__ import annotations

import re

from .base import PATH, TemplateContext, TemplateTransformer, compile_directive, stringify


class VariableSubstituter(TemplateTransformer):
    VAR_PATTERN = compile_directive(r"\{\{(" + PATH + r")\}\}")

    def transform(self, content: str, context: TemplateContext) -> str:
        def replace(match: "re.Match[str]") -> str:
            path = match.group(1)
            value = context.lookup(path)
            context.record_variable(path, resolved=value is not None)
            return stringify(value)

        return self.VAR_PATTERN.sub(replace, content)


__all__ = ["VariableSubstituter"]
