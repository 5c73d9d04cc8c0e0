"""Core data types for the section composition pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

ALL_SOURCES = "_assembled"

FALLBACK_ACTIONS = ("null", "emptyObject", "omit", "skip")


class _Missing:
    """Marker for a data source that is absent from the loaded bag."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


DataSource = Union[str, Tuple[str, ...]]


@dataclass(frozen=True)
class SectionDefinition:
    """One declarative section of the composition pipeline.

    Built from the camelCase mappings used in section files::

        {"id": "memories", "name": "Caller Memories", "dataSource": "memories",
         "activateWhen": {"condition": "dataExists"},
         "fallback": {"action": "emptyObject"},
         "transform": "deduplicateAndGroupMemories",
         "outputKey": "memories"}
    """

    id: str
    name: str
    output_key: str
    data_source: DataSource = ALL_SOURCES
    activate_when: Mapping[str, Any] = field(default_factory=lambda: {"condition": "always"})
    fallback: Mapping[str, Any] = field(default_factory=lambda: {"action": "null"})
    transform: Tuple[str, ...] = ()
    depends_on: Tuple[str, ...] = ()
    priority: float = 0
    config: Mapping[str, Any] = field(default_factory=dict)

    @property
    def condition(self) -> str:
        return str(self.activate_when.get("condition") or "always")

    @property
    def fallback_action(self) -> str:
        return str(self.fallback.get("action") or "null")

    @property
    def source_names(self) -> List[str]:
        if isinstance(self.data_source, tuple):
            return list(self.data_source)
        return [self.data_source]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SectionDefinition":
        data_source = raw.get("dataSource", ALL_SOURCES)
        if isinstance(data_source, (list, tuple)):
            data_source = tuple(str(s) for s in data_source)
        else:
            data_source = str(data_source)

        transform = raw.get("transform")
        if transform is None:
            transforms: Tuple[str, ...] = ()
        elif isinstance(transform, (list, tuple)):
            transforms = tuple(str(t) for t in transform)
        else:
            transforms = (str(transform),)

        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or raw["id"]),
            output_key=str(raw.get("outputKey") or raw["id"]),
            data_source=data_source,
            activate_when=dict(raw.get("activateWhen") or {"condition": "always"}),
            fallback=dict(raw.get("fallback") or {"action": "null"}),
            transform=transforms,
            depends_on=tuple(str(d) for d in (raw.get("dependsOn") or ())),
            priority=raw.get("priority") or 0,
            config=dict(raw.get("config") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        if not self.transform:
            transform: Any = None
        elif len(self.transform) == 1:
            transform = self.transform[0]
        else:
            transform = list(self.transform)
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "priority": self.priority,
            "dataSource": list(self.data_source) if isinstance(self.data_source, tuple) else self.data_source,
            "activateWhen": dict(self.activate_when),
            "fallback": dict(self.fallback),
            "transform": transform,
            "outputKey": self.output_key,
        }
        if self.depends_on:
            data["dependsOn"] = list(self.depends_on)
        if self.config:
            data["config"] = dict(self.config)
        return data


@dataclass
class ResolvedSpecs:
    """Specs chosen for the subject before sections run."""

    identity: Optional[Dict[str, Any]] = None
    content: Optional[Dict[str, Any]] = None
    voice: Optional[Dict[str, Any]] = None

    def get(self, role: str) -> Optional[Dict[str, Any]]:
        return {
            "identity": self.identity,
            "content": self.content,
            "voice": self.voice,
        }.get(role)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identitySpec": _spec_name(self.identity),
            "contentSpec": _spec_name(self.content),
            "voiceSpec": _spec_name(self.voice),
        }


def _spec_name(spec: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not spec:
        return None
    return spec.get("name")


class AssembledContext:
    """Per-run state shared by every section.

    ``loaded_data`` and ``sections`` are exposed as read-only views.
    Only the executor writes section outputs, through :meth:`store`.
    """

    def __init__(
        self,
        loaded_data: Mapping[str, Any],
        *,
        resolved_specs: Optional[ResolvedSpecs] = None,
        shared_state: Optional[Mapping[str, Any]] = None,
        spec_config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._loaded = dict(loaded_data or {})
        self._sections: Dict[str, Any] = {}
        self.loaded_data: Mapping[str, Any] = MappingProxyType(self._loaded)
        self.sections: Mapping[str, Any] = MappingProxyType(self._sections)
        self.resolved_specs = resolved_specs or ResolvedSpecs()
        self.shared_state: Dict[str, Any] = dict(shared_state or {})
        self.spec_config: Dict[str, Any] = dict(spec_config or {})

    def store(self, key: str, value: Any) -> None:
        self._sections[key] = value

    def has_section(self, key: str) -> bool:
        return key in self._sections

    @property
    def caller(self) -> Optional[Mapping[str, Any]]:
        return self._loaded.get("caller")

    @property
    def caller_domain(self) -> Optional[Mapping[str, Any]]:
        caller = self.caller or {}
        return caller.get("domain")

    def __repr__(self) -> str:
        return f"AssembledContext(loaded={sorted(self._loaded)}, sections={list(self._sections)})"


@dataclass
class CompositionResult:
    """Output of one composition run."""

    document: Dict[str, Any]
    caller_context: str
    sections: Dict[str, Any]
    resolved_specs: ResolvedSpecs
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "llmPrompt": self.document,
            "callerContext": self.caller_context,
            "sections": self.sections,
            "specs": self.resolved_specs.to_dict(),
            "metadata": self.metadata,
        }


def get_attribute_value(attr: Mapping[str, Any]) -> Any:
    """Return the typed value of a subject attribute record."""
    value_type = attr.get("valueType")
    if value_type == "STRING":
        return attr.get("stringValue")
    if value_type == "NUMBER":
        return attr.get("numberValue")
    if value_type == "BOOLEAN":
        return attr.get("booleanValue")
    if value_type == "JSON":
        return attr.get("jsonValue")
    for key in ("stringValue", "numberValue", "booleanValue", "jsonValue"):
        if attr.get(key):
            return attr.get(key)
    return None


def classify_value(value: Optional[float], thresholds: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """HIGH / MODERATE / LOW against the run thresholds (default 0.65 / 0.35)."""
    if value is None:
        return None
    thresholds = thresholds or {}
    high = float(thresholds.get("high", 0.65))
    low = float(thresholds.get("low", 0.35))
    if value >= high:
        return "HIGH"
    if value <= low:
        return "LOW"
    return "MODERATE"


def as_list(value: Any) -> List[Any]:
    if value is None or value is MISSING:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def ensure_sections(raw: Sequence[Any]) -> List[SectionDefinition]:
    """Accept definitions or raw mappings and return definitions."""
    return [s if isinstance(s, SectionDefinition) else SectionDefinition.from_dict(s) for s in raw]


__all__ = [
    "ALL_SOURCES",
    "AssembledContext",
    "CompositionResult",
    "FALLBACK_ACTIONS",
    "MISSING",
    "ResolvedSpecs",
    "SectionDefinition",
    "as_list",
    "classify_value",
    "ensure_sections",
    "get_attribute_value",
]
