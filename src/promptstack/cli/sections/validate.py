"""
promptstack sections validate command.

SUMMARY: Check a section list for schema and dependency-graph problems

Schema errors are reported when the list is loaded; graph checks cover
duplicate ids, dangling dependencies, cycles, unknown transforms and
unknown activation conditions.
"""

from __future__ import annotations

import argparse
import sys

from promptstack.cli import OutputFormatter, add_sections_flag, add_standard_flags, effective_sections, get_repo_root
from promptstack.core.composition import validate_section_graph
from promptstack.core.exceptions import SectionConfigError

SUMMARY = "Check a section list for schema and dependency-graph problems"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as errors",
    )
    add_sections_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        sections = effective_sections(args, get_repo_root(args))
    except SectionConfigError as e:
        formatter.error(e, error_code="schema_error")
        return 1

    report = validate_section_graph(sections)
    failed = not report.ok or (args.strict and bool(report.warnings))

    if formatter.json_mode:
        formatter.json_output({**report.to_dict(), "strict": bool(args.strict), "valid": not failed})
        return 1 if failed else 0

    for issue in report.warnings:
        formatter.text(f"⚠️  {issue.code}: {issue.message}")
    for issue in report.errors:
        formatter.text(f"❌ {issue.code}: {issue.message}")

    if failed:
        formatter.text(f"\n❌ Section list invalid ({len(report.errors)} errors, {len(report.warnings)} warnings)")
        return 1
    formatter.text(f"✅ {report.section_count} sections valid")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
