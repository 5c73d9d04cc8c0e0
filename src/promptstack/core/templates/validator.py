"""Strict template checks for authoring time.

The renderer is lenient: unmatched directives are deleted and unknown
variables render empty. ``validate_template`` reports those problems
instead so templates can be checked before they are stored.

Issue codes:
- ``unterminated``       error   ``{{`` without a closing ``}}``
- ``malformed``          error   token that matches no directive form
- ``unmatched-close``    error   closing tag with no (or the wrong) opener
- ``unclosed``           error   opening tag never closed
- ``loop-var-outside``   warning ``this``/``@index`` used outside ``#each``
- ``unknown-path``       warning variable not found in the sample data
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import TemplateValidationError
from .base import PATH, resolve_path

TOKEN_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)

_BLOCK_OPEN = re.compile(r"#(if|unless|each)\s+(" + PATH + r")", re.ASCII)
_SECTION_OPEN = re.compile(r"#(" + PATH + r")", re.ASCII)
_CLOSE = re.compile(r"/(" + PATH + r")", re.ASCII)
_VARIABLE = re.compile(PATH, re.ASCII)
_LOOP_VARIABLE = re.compile(r"this(?:\.(" + PATH + r"))?|@index", re.ASCII)

_BLOCK_KEYWORDS = ("if", "unless", "each")


@dataclass(frozen=True)
class TemplateIssue:
    code: str
    severity: str  # warning | error
    message: str
    position: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
            "position": self.position,
        }


@dataclass
class TemplateValidationReport:
    issues: List[TemplateIssue] = field(default_factory=list)

    @property
    def errors(self) -> List[TemplateIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> List[TemplateIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, code: str, severity: str, message: str, position: int) -> None:
        self.issues.append(TemplateIssue(code, severity, message, position))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "errorCount": len(self.errors),
            "warningCount": len(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
        }

    def raise_for_errors(self) -> None:
        if self.ok:
            return
        first = self.errors[0]
        raise TemplateValidationError(
            f"Template has {len(self.errors)} error(s): {first.message}",
            context={"issues": [i.to_dict() for i in self.errors]},
        )


@dataclass
class _OpenBlock:
    kind: str  # if | unless | each | section
    path: str
    position: int
    scope: Optional[Mapping[str, Any]] = None

    @property
    def closing_name(self) -> str:
        return self.path if self.kind == "section" else self.kind

    @property
    def opening_tag(self) -> str:
        if self.kind == "section":
            return "{{#" + self.path + "}}"
        return "{{#" + self.kind + " " + self.path + "}}"


def validate_template(template: str, data: Optional[Mapping[str, Any]] = None) -> TemplateValidationReport:
    """Check ``template`` for structural problems.

    When ``data`` is given, variables are also resolved against it (and
    against the scope of enclosing section blocks) and unresolvable paths
    are reported as warnings.
    """
    report = TemplateValidationReport()
    stack: List[_OpenBlock] = []

    consumed_until = 0
    for match in TOKEN_PATTERN.finditer(template or ""):
        _check_unterminated(template[consumed_until:match.start()], consumed_until, report)
        consumed_until = match.end()

        raw = match.group(1)
        pos = match.start()

        block = _BLOCK_OPEN.fullmatch(raw)
        if block:
            kind, path = block.group(1), block.group(2)
            stack.append(_OpenBlock(kind, path, pos))
            continue

        section = _SECTION_OPEN.fullmatch(raw)
        if section:
            path = section.group(1)
            if path in _BLOCK_KEYWORDS:
                report.add("malformed", "error", f"'{{{{#{path}}}}}' is missing a path", pos)
                continue
            scope = _section_scope(path, stack, data) if data is not None else None
            stack.append(_OpenBlock("section", path, pos, scope))
            continue

        close = _CLOSE.fullmatch(raw)
        if close:
            _close_block(close.group(1), pos, stack, report)
            continue

        loop_var = _LOOP_VARIABLE.fullmatch(raw)
        if loop_var:
            if not any(b.kind == "each" for b in stack):
                report.add("loop-var-outside", "warning", f"'{{{{{raw}}}}}' used outside an #each block", pos)
            continue

        if _VARIABLE.fullmatch(raw):
            if data is not None and _lookup(raw, stack, data) is None:
                report.add("unknown-path", "warning", f"Variable '{raw}' not found in data", pos)
            continue

        report.add("malformed", "error", f"Unrecognised directive '{{{{{raw}}}}}'", pos)

    _check_unterminated((template or "")[consumed_until:], consumed_until, report)

    for block in stack:
        report.add("unclosed", "error", f"'{block.opening_tag}' is never closed", block.position)
    return report


def _check_unterminated(segment: str, offset: int, report: TemplateValidationReport) -> None:
    index = segment.find("{{")
    if index >= 0:
        report.add("unterminated", "error", "'{{' without matching '}}'", offset + index)


def _close_block(name: str, pos: int, stack: List[_OpenBlock], report: TemplateValidationReport) -> None:
    if not stack:
        report.add("unmatched-close", "error", f"'{{{{/{name}}}}}' has no opening tag", pos)
        return
    top = stack[-1]
    if top.closing_name == name:
        stack.pop()
        return
    # Recover when the opener exists further down the stack.
    for depth in range(len(stack) - 1, -1, -1):
        if stack[depth].closing_name == name:
            for skipped in stack[depth + 1:]:
                report.add("unclosed", "error", f"Block '{skipped.path}' closed implicitly by '/{name}'", skipped.position)
            del stack[depth:]
            return
    report.add(
        "unmatched-close",
        "error",
        f"'{{{{/{name}}}}}' does not match the open '{top.closing_name}' block",
        pos,
    )


def _section_scope(path: str, stack: List[_OpenBlock], data: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    value = _lookup(path, stack, data)
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, Mapping):
                return item
    return None


def _lookup(path: str, stack: List[_OpenBlock], data: Mapping[str, Any]) -> Any:
    # Only single names bind to enclosing section scopes; dotted paths resolve from the root.
    if "." not in path:
        for block in reversed(stack):
            if block.scope is not None and path in block.scope:
                return block.scope[path]
    return resolve_path(data, path)


__all__ = ["TemplateIssue", "TemplateValidationReport", "validate_template"]
