"""Domain-specific configuration accessors."""
from __future__ import annotations

from .composition import CompositionConfig, TemplateConfig
from .logging import LoggingConfig

__all__ = ["CompositionConfig", "TemplateConfig", "LoggingConfig"]
