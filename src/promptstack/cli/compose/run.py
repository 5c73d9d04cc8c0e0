"""
promptstack compose run command.

SUMMARY: Compose a prompt document from a data bag file
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from promptstack.cli import (
    OutputFormatter,
    add_sections_flag,
    add_standard_flags,
    configure_logging,
    get_repo_root,
    resolve_sections,
)
from promptstack.core.composition import CompositionExecutor, StaticLoader, render_prompt_summary
from promptstack.core.exceptions import PromptStackError

SUMMARY = "Compose a prompt document from a data bag file"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "--data",
        required=True,
        metavar="FILE",
        help="Loaded data bag (YAML or JSON mapping of fragment name to value)",
    )
    parser.add_argument(
        "--subject",
        help="Subject id passed to the loader (defaults to caller.id from the bag)",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print the markdown prompt summary instead of the document",
    )
    parser.add_argument(
        "--metadata",
        action="store_true",
        help="Include run metadata (activated/skipped sections, timings)",
    )
    parser.add_argument(
        "--output",
        "-o",
        metavar="FILE",
        help="Write the document JSON to FILE instead of stdout",
    )
    add_sections_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Compose and print one document."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        repo_root = get_repo_root(args)
        configure_logging(repo_root)

        loader = StaticLoader.from_file(Path(args.data))
        subject_id = args.subject or str((loader.load("", {}).get("caller") or {}).get("id") or "")
        executor = CompositionExecutor.from_config(repo_root, sections=resolve_sections(args, repo_root))
        result = executor.compose(subject_id, loader)

        if args.summary and not formatter.json_mode:
            formatter.text(render_prompt_summary(result.document))
            return 0

        payload = {"document": result.document}
        if args.metadata:
            payload["metadata"] = result.metadata
        if args.summary:
            payload["summary"] = render_prompt_summary(result.document)

        if args.output:
            Path(args.output).write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
            formatter.success(
                {"output": args.output, "sectionsActivated": len(result.metadata["sectionsActivated"])},
                f"Wrote {args.output} ({len(result.metadata['sectionsActivated'])} sections activated)",
            )
            return 0

        formatter.json_output(payload if (args.metadata or formatter.json_mode) else result.document)
        return 0

    except PromptStackError as e:
        formatter.error(e, error_code="compose_error")
        return 1
    except (OSError, ValueError) as e:
        formatter.error(e, error_code="compose_error")
        return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
