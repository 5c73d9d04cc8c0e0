from __future__ import annotations

from typing import Any, Dict, Mapping


class PromptStackError(Exception):
    """Base exception for promptstack."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Shallow copy so callers can keep mutating their own mapping.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class SubjectNotFoundError(PromptStackError, LookupError):
    """Raised when the loaded data has no root subject record."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        PromptStackError.__init__(self, message, context=context)
        LookupError.__init__(self, message)


class SectionConfigError(PromptStackError, ValueError):
    """Raised when a section list is malformed or its dependency graph is invalid."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        PromptStackError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class TemplateValidationError(PromptStackError, ValueError):
    """Raised by the strict template checker when a template has authoring errors."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        PromptStackError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class ConfigError(PromptStackError, ValueError):
    """Raised for malformed configuration files or environment overrides."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        PromptStackError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "PromptStackError",
    "SubjectNotFoundError",
    "SectionConfigError",
    "TemplateValidationError",
    "ConfigError",
]
