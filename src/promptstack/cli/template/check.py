"""
promptstack template check command.

SUMMARY: Strictly validate a template before storing it
"""

from __future__ import annotations

import argparse
import sys

from promptstack.cli import OutputFormatter, add_json_flag, read_json_arg
from promptstack.cli.template.render import read_template_arg
from promptstack.core.templates import validate_template

SUMMARY = "Strictly validate a template before storing it"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("template", help="Template text, or @FILE to read it from a file")
    parser.add_argument(
        "--data",
        help="Sample data (inline JSON or @FILE); enables unknown-variable warnings",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as errors",
    )
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        template = read_template_arg(args.template)
        data = read_json_arg(args.data) if args.data else None
    except (OSError, ValueError) as e:
        formatter.error(e, error_code="template_input_error")
        return 1

    report = validate_template(template, data)
    failed = not report.ok or (args.strict and bool(report.warnings))

    if formatter.json_mode:
        formatter.json_output({**report.to_dict(), "valid": not failed})
        return 1 if failed else 0

    for issue in report.issues:
        marker = "❌" if issue.severity == "error" else "⚠️ "
        formatter.text(f"{marker} {issue.code} at {issue.position}: {issue.message}")
    formatter.text("❌ Template invalid" if failed else "✅ Template valid")
    return 1 if failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
