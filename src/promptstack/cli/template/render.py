"""
promptstack template render command.

SUMMARY: Render a template against JSON/YAML data

    promptstack template render "{{#each items}}{{this.name}},{{/each}}" --data @items.yaml
    promptstack template render @fragment.txt --value 0.82 --param-name Openness
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from promptstack.cli import OutputFormatter, add_standard_flags, get_repo_root, read_json_arg
from promptstack.core.templates import compile_template, render_with_report

SUMMARY = "Render a template against JSON/YAML data"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("template", help="Template text, or @FILE to read it from a file")
    parser.add_argument(
        "--data",
        help="Inline JSON object, or @FILE (YAML/JSON)",
    )
    parser.add_argument(
        "--value",
        type=float,
        help="Preview as a parameter fragment with this measured value (0-1)",
    )
    parser.add_argument("--param-name", default="", help="Parameter name for --value previews")
    add_standard_flags(parser)


def read_template_arg(value: str) -> str:
    if value.startswith("@"):
        return Path(value[1:]).read_text(encoding="utf-8")
    return value


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        template = read_template_arg(args.template)
        data = read_json_arg(args.data)
    except (OSError, ValueError) as e:
        formatter.error(e, error_code="template_input_error")
        return 1

    if args.value is not None:
        from promptstack.core.config.domains import TemplateConfig

        cfg = TemplateConfig(get_repo_root(args))
        text = compile_template(
            template,
            value=args.value,
            parameter_name=args.param_name,
            user_name=str((data.get("user") or {}).get("name") or ""),
            high=cfg.high_threshold,
            medium=cfg.medium_threshold,
        )
        formatter.success({"text": text}, text)
        return 0

    result = render_with_report(template, data)
    if formatter.json_mode:
        formatter.json_output(result.to_dict())
    else:
        formatter.text(result.text)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
