"""
promptstack sections order command.

SUMMARY: Show the dependency-resolved execution order
"""

from __future__ import annotations

import argparse
import sys

from promptstack.cli import OutputFormatter, add_sections_flag, add_standard_flags, effective_sections, get_repo_root
from promptstack.core.composition import resolve_order
from promptstack.core.exceptions import PromptStackError

SUMMARY = "Show the dependency-resolved execution order"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_sections_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        ordered = resolve_order(effective_sections(args, get_repo_root(args)))
    except PromptStackError as e:
        formatter.error(e, error_code="sections_error")
        return 1

    if formatter.json_mode:
        formatter.json_output({"order": [s.id for s in ordered]})
        return 0

    for index, section in enumerate(ordered, start=1):
        deps = f" (after {', '.join(section.depends_on)})" if section.depends_on else ""
        formatter.text(f"{index:>3}. {section.id}{deps}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
