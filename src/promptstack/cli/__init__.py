"""
promptstack CLI package.

Commands are auto-discovered from the domain subfolders (compose/,
sections/, template/).

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter, format_json, print_error
from ._args import add_json_flag, add_repo_root_flag, add_sections_flag, add_standard_flags
from ._utils import configure_logging, effective_sections, get_repo_root, read_json_arg, resolve_sections

__all__ = [
    "OutputFormatter",
    "format_json",
    "print_error",
    "add_json_flag",
    "add_repo_root_flag",
    "add_sections_flag",
    "add_standard_flags",
    "configure_logging",
    "effective_sections",
    "get_repo_root",
    "read_json_arg",
    "resolve_sections",
]
