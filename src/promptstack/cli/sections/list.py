"""
promptstack sections list command.

SUMMARY: List configured sections
"""

from __future__ import annotations

import argparse
import sys

from promptstack.cli import OutputFormatter, add_sections_flag, add_standard_flags, effective_sections, get_repo_root
from promptstack.core.exceptions import PromptStackError

SUMMARY = "List configured sections"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_sections_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        sections = effective_sections(args, get_repo_root(args))
    except PromptStackError as e:
        formatter.error(e, error_code="sections_error")
        return 1

    if formatter.json_mode:
        formatter.json_output({
            "sections": [
                {
                    "id": s.id,
                    "name": s.name,
                    "outputKey": s.output_key,
                    "dataSource": s.data_source,
                    "condition": s.condition,
                    "fallback": s.fallback_action,
                    "transform": list(s.transform),
                    "dependsOn": list(s.depends_on),
                }
                for s in sections
            ]
        })
        return 0

    formatter.text(f"{len(sections)} sections:")
    for s in sections:
        transform = ", ".join(s.transform) or "-"
        formatter.text(f"  {s.id:<24} -> {s.output_key:<24} [{s.condition}/{s.fallback_action}] {transform}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
