"""Substitute values for sections that did not activate."""
from __future__ import annotations

import copy
import logging

from .types import AssembledContext, SectionDefinition

logger = logging.getLogger(__name__)


def apply_fallback(section: SectionDefinition, context: AssembledContext) -> bool:
    """Store the fallback for ``section``; return whether a key was written.

    ``null`` stores ``None``; ``emptyObject`` stores a deep copy of
    ``fallback.value`` (or ``{}``); ``omit`` and ``skip`` store nothing.
    """
    action = section.fallback_action
    if action == "null":
        context.store(section.output_key, None)
        return True
    if action == "emptyObject":
        value = section.fallback.get("value")
        context.store(section.output_key, copy.deepcopy(value) if value is not None else {})
        return True
    if action in ("omit", "skip"):
        return False
    logger.warning("Unknown fallback action '%s' on section '%s'; storing null", action, section.id)
    context.store(section.output_key, None)
    return True


__all__ = ["apply_fallback"]
