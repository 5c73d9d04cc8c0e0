from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from promptstack.core.config.domains.logging import DEFAULT_FORMAT

_INSTALLED_HANDLER: logging.Handler | None = None
_INSTALLED_TARGET: str | None = None
_JSON_MODE_NULL_HANDLER: logging.Handler | None = None


def _level_from_name(name: str) -> int:
    level = getattr(logging, str(name).upper(), None)
    return level if isinstance(level, int) else logging.WARNING


def configure_stdlib_logging(
    *,
    level: str = "WARNING",
    log_path: Optional[Path] = None,
    fmt: str = DEFAULT_FORMAT,
) -> None:
    """Install one promptstack handler on the root logger.

    Writes to ``log_path`` when given, otherwise to stderr (stdout stays
    reserved for command output). Idempotent per target: calling again with
    the same target only updates the level.
    """
    global _INSTALLED_HANDLER, _INSTALLED_TARGET

    target = str(Path(log_path).resolve()) if log_path else "<stderr>"
    root = logging.getLogger()
    root.setLevel(_level_from_name(level))

    if _INSTALLED_HANDLER is not None and _INSTALLED_TARGET == target:
        _INSTALLED_HANDLER.setLevel(_level_from_name(level))
        return

    if _INSTALLED_HANDLER is not None:
        root.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
        _INSTALLED_HANDLER = None

    handler: logging.Handler
    if log_path:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)

    _INSTALLED_HANDLER = handler
    _INSTALLED_TARGET = target


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: remove the handler installed by :func:`configure_stdlib_logging`."""
    global _INSTALLED_HANDLER, _INSTALLED_TARGET, _JSON_MODE_NULL_HANDLER
    root = logging.getLogger()
    if _INSTALLED_HANDLER is not None:
        root.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
    if _JSON_MODE_NULL_HANDLER is not None:
        root.removeHandler(_JSON_MODE_NULL_HANDLER)
    root.setLevel(logging.WARNING)
    _INSTALLED_HANDLER = None
    _INSTALLED_TARGET = None
    _JSON_MODE_NULL_HANDLER = None


def suppress_lastresort_in_json_mode() -> None:
    """Keep logging's implicit lastResort handler off stderr in ``--json`` mode.

    With no handlers configured, WARNING+ records go to stderr through
    ``logging.lastResort``. A NullHandler on the root logger prevents that
    without changing any logger levels.
    """
    global _JSON_MODE_NULL_HANDLER

    root = logging.getLogger()
    if root.handlers or _JSON_MODE_NULL_HANDLER is not None:
        return
    _JSON_MODE_NULL_HANDLER = logging.NullHandler()
    root.addHandler(_JSON_MODE_NULL_HANDLER)


__all__ = ["configure_stdlib_logging", "reset_stdlib_logging_for_tests", "suppress_lastresort_in_json_mode"]
