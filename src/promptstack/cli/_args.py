"""Common CLI argument registration helpers."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override project root path (defaults to PROMPTSTACK_PROJECT_ROOT or the nearest .promptstack/)",
    )


def add_sections_flag(parser: argparse.ArgumentParser) -> None:
    """Add --sections for a YAML/JSON section list.

    Without it commands use ``composition.sectionsFile`` from the project
    configuration, then the bundled reference list.
    """
    parser.add_argument(
        "--sections",
        type=str,
        metavar="FILE",
        help="Section list file (YAML or JSON)",
    )


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    add_json_flag(parser)
    add_repo_root_flag(parser)


__all__ = [
    "add_json_flag",
    "add_repo_root_flag",
    "add_sections_flag",
    "add_standard_flags",
]
