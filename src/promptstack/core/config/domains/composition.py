"""Domain-specific configuration for the composition pipeline and templates."""

from __future__ import annotations

import copy
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Optional

from promptstack.core.exceptions import ConfigError

from ..base import BaseDomainConfig

UNKNOWN_CONDITION_POLICIES = ("open", "closed")


class CompositionConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "composition"

    @cached_property
    def version_tag(self) -> str:
        return str(self.section.get("versionTag", "2.0"))

    @cached_property
    def private_prefix(self) -> str:
        return str(self.section.get("privatePrefix") or "_")

    @cached_property
    def unknown_condition_policy(self) -> str:
        policy = str(self.section.get("unknownConditionPolicy", "open")).strip().lower()
        if policy not in UNKNOWN_CONDITION_POLICIES:
            raise ConfigError(
                f"composition.unknownConditionPolicy must be one of {UNKNOWN_CONDITION_POLICIES}, got '{policy}'",
                context={"value": policy},
            )
        return policy

    @cached_property
    def sections_file(self) -> Optional[Path]:
        raw = self.section.get("sectionsFile")
        if not raw:
            return None
        path = Path(str(raw))
        if not path.is_absolute() and self._repo_root is not None:
            path = Path(self._repo_root) / path
        return path

    @cached_property
    def spec_config(self) -> Dict[str, Any]:
        """Run-level settings handed to transforms (deep copy, safe to mutate)."""
        return copy.deepcopy(self.section.get("specConfig") or {})


class TemplateConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "templates"

    @cached_property
    def high_threshold(self) -> float:
        return float((self.section.get("labelThresholds") or {}).get("high", 0.7))

    @cached_property
    def medium_threshold(self) -> float:
        return float((self.section.get("labelThresholds") or {}).get("medium", 0.3))


__all__ = ["CompositionConfig", "TemplateConfig", "UNKNOWN_CONDITION_POLICIES"]
