"""
Auto-discovery CLI dispatcher for promptstack.

Scans subfolders for commands and registers them automatically: a command
is any non-underscore ``.py`` file in a domain folder exposing ``SUMMARY``,
``register_args(parser)`` and ``main(args) -> int``.

    promptstack compose run --data bag.yaml
    promptstack sections order --sections my-sections.yaml
    promptstack template render "{{#if name}}Hi {{name}}{{/if}}" --data '{"name": "Ada"}'
"""

from __future__ import annotations

import argparse
import importlib
import sys
from collections.abc import Callable
from contextlib import nullcontext
from functools import lru_cache
from pathlib import Path
from typing import Any

from promptstack.core.utils.profiling import Profiler, enable_profiler, span


@lru_cache(maxsize=1)
def discover_domains() -> dict[str, Path]:
    """Map each CLI domain folder name to its directory."""
    cli_dir = Path(__file__).parent
    domains = {}
    for item in cli_dir.iterdir():
        if item.is_dir() and not item.name.startswith("_"):
            has_commands = any(
                f.suffix == ".py" and not f.name.startswith("_")
                for f in item.iterdir()
            )
            if has_commands:
                domains[item.name] = item
    return domains


@lru_cache(maxsize=32)
def discover_commands(domain: str) -> dict[str, dict[str, Any]]:
    """
    Discover all commands in a domain subfolder.

    Args:
        domain: Name of the domain (e.g., "compose", "sections")

    Returns:
        Dict mapping command name to command info dict
    """
    with span("cli.discover.domain_commands", domain=domain):
        domain_dir = Path(__file__).parent / domain
    commands: dict[str, dict[str, Any]] = {}

    for item in domain_dir.glob("*.py"):
        if item.name.startswith("_"):
            continue

        cmd_name = item.stem
        try:
            with span("cli.discover.import", module=f"promptstack.cli.{domain}.{cmd_name}"):
                module = importlib.import_module(f"promptstack.cli.{domain}.{cmd_name}")
            commands[cmd_name] = {
                "module": module,
                "summary": getattr(module, "SUMMARY", f"{domain} {cmd_name}"),
                "register_args": getattr(module, "register_args", None),
                "main": getattr(module, "main", None),
            }
        except ImportError as e:
            print(f"Warning: Could not import {domain}.{cmd_name}: {e}", file=sys.stderr)
            continue

    return commands


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every discovered domain and command."""
    parser = argparse.ArgumentParser(
        prog="promptstack",
        description="Compose agent runtime prompts from declarative section pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Emit profiling information for discovery, loading and composition (sent to stderr).",
    )

    subparsers = parser.add_subparsers(
        dest="domain",
        title="domains",
        description="Available command domains",
        metavar="<domain>",
    )

    for domain_name in sorted(discover_domains().keys()):
        domain_commands = discover_commands(domain_name)
        if not domain_commands:
            continue

        domain_parser = subparsers.add_parser(
            domain_name,
            help=f"{domain_name.title()} commands",
        )
        cmd_subparsers = domain_parser.add_subparsers(
            dest="command",
            title="commands",
            description=f"Available {domain_name} commands",
            metavar="<command>",
        )

        for cmd_name, cmd_info in sorted(domain_commands.items()):
            primary_name = cmd_name.replace("_", "-")
            aliases = [cmd_name] if primary_name != cmd_name else []
            cmd_parser = cmd_subparsers.add_parser(
                primary_name,
                aliases=aliases,
                help=cmd_info["summary"],
            )
            if cmd_info["register_args"]:
                cmd_info["register_args"](cmd_parser)
            if cmd_info["main"]:
                cmd_parser.set_defaults(_func=cmd_info["main"])

    return parser


def _get_version() -> str:
    from promptstack import __version__

    return __version__


def _strip_profile_flag(argv: list[str]) -> tuple[list[str], bool]:
    """Strip ``--profile`` only when it appears before the domain token."""
    enabled = False
    out: list[str] = []
    seen_domain = False
    for arg in argv:
        if not seen_domain and arg == "--profile":
            enabled = True
            continue
        if not arg.startswith("-"):
            seen_domain = True
        out.append(arg)
    return out, enabled


def _print_profile(profiler: Profiler) -> None:
    totals = profiler.summary_ms()
    top = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:50]
    print("\nProfiling (top spans):", file=sys.stderr)
    for name, ms in top:
        print(f"- {name}: {ms:.1f}ms", file=sys.stderr)


def _run(argv: list[str]) -> int:
    with span("cli.parser.build"):
        parser = build_parser()
    with span("cli.parser.parse_args"):
        args = parser.parse_args(argv)

    if not args.domain:
        parser.print_help()
        return 0

    func: Callable[[argparse.Namespace], int] | None = getattr(args, "_func", None)
    if func is None:
        domain_parser = parser._subparsers._group_actions[0].choices.get(args.domain)
        if domain_parser:
            domain_parser.print_help()
        return 0

    if getattr(args, "json", False):
        # stdout/stderr stay machine-readable
        from promptstack.core.stdlib_logging import suppress_lastresort_in_json_mode

        suppress_lastresort_in_json_mode()

    command_name = f"{args.domain} {args.command}"
    try:
        with span("cli.command.exec", command=command_name):
            return int(func(args) or 0)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the promptstack CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if argv is None:
        argv = sys.argv[1:]

    argv, profile_enabled = _strip_profile_flag(list(argv))
    profiler = Profiler() if profile_enabled else None
    ctx = enable_profiler(profiler) if profiler else nullcontext()

    with ctx:
        with span("cli.total"):
            result = _run(argv)

    if profiler is not None:
        _print_profile(profiler)
    return result


if __name__ == "__main__":
    sys.exit(main())
