"""Domain-specific configuration for stdlib logging."""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path
from typing import Optional

from ..base import BaseDomainConfig

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LoggingConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "logging"

    @cached_property
    def level(self) -> str:
        name = str(self.section.get("level") or "WARNING").upper()
        return name if isinstance(getattr(logging, name, None), int) else "WARNING"

    @cached_property
    def path(self) -> Optional[Path]:
        raw = self.section.get("path")
        if not raw:
            return None
        path = Path(str(raw))
        if not path.is_absolute() and self._repo_root is not None:
            path = Path(self._repo_root) / path
        return path

    @cached_property
    def format(self) -> str:
        return str(self.section.get("format") or DEFAULT_FORMAT)


__all__ = ["LoggingConfig", "DEFAULT_FORMAT"]
