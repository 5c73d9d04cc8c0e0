"""Composition executor: runs a section list over one loaded bag.

Pipeline for one run:

1. resolve identity / content / voice specs from playbooks and system specs
2. compute shared state (first-call flags, curriculum modules, review plan)
3. order sections by ``dependsOn``
4. per section: activation -> fallback, or raw input -> transform chain
5. assemble the document and run metadata

Sections run strictly one after another; each may read the outputs of the
sections before it through ``context.sections``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from promptstack.core.exceptions import SubjectNotFoundError
from promptstack.core.utils.profiling import Timer, span

from .activation import evaluate_activation
from .fallback import apply_fallback
from .loaders import DataLoader
from .resolver import resolve_order
from .sections import load_sections, sections_or_default
from .shared_state import compute_shared_state
from .sources import collect_dependencies, resolve_data_source
from .specs import resolve_all_specs
from .summary import build_agent_identity_summary, build_caller_context, merged_target_count
from .transforms import TransformRegistry, default_registry, run_transform_chain
from .types import ALL_SOURCES, MISSING, AssembledContext, CompositionResult, SectionDefinition

logger = logging.getLogger(__name__)

DEFAULT_VERSION_TAG = "2.0"
DEFAULT_PRIVATE_PREFIX = "_"


def strip_private_fields(value: Any, prefix: str) -> Any:
    """Drop top-level keys starting with ``prefix`` from dict values."""
    if isinstance(value, Mapping) and prefix:
        return {k: v for k, v in value.items() if not str(k).startswith(prefix)}
    return value


class CompositionExecutor:
    """Runs the section pipeline.

    Usage:
        executor = CompositionExecutor()                 # bundled sections
        result = executor.compose("caller-1", loader)    # loader.load(...) -> bag
        result.document["_version"]
    """

    def __init__(
        self,
        sections: Optional[Sequence[Any]] = None,
        *,
        spec_config: Optional[Mapping[str, Any]] = None,
        version_tag: str = DEFAULT_VERSION_TAG,
        private_prefix: str = DEFAULT_PRIVATE_PREFIX,
        unknown_condition_policy: str = "open",
        registry: Optional[TransformRegistry] = None,
    ) -> None:
        self.sections: List[SectionDefinition] = sections_or_default(sections)
        self.spec_config: Dict[str, Any] = dict(spec_config or {})
        self.version_tag = version_tag
        self.private_prefix = private_prefix
        self.unknown_condition_policy = unknown_condition_policy
        self.registry = registry or default_registry

    @classmethod
    def from_config(
        cls,
        repo_root: Optional[Path] = None,
        *,
        config: Optional[Mapping[str, Any]] = None,
        sections: Optional[Sequence[Any]] = None,
    ) -> "CompositionExecutor":
        """Build an executor from the layered ``composition`` configuration."""
        from promptstack.core.config.domains import CompositionConfig

        cfg = CompositionConfig(repo_root, config=config)
        if sections is None and cfg.sections_file is not None:
            sections = load_sections(cfg.sections_file, repo_root=repo_root)
        return cls(
            sections,
            spec_config=cfg.spec_config,
            version_tag=cfg.version_tag,
            private_prefix=cfg.private_prefix,
            unknown_condition_policy=cfg.unknown_condition_policy,
        )

    # ------------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------------

    def compose(self, subject_id: str, loader: DataLoader) -> CompositionResult:
        """Load the bag for ``subject_id`` and run the pipeline over it.

        Raises:
            SubjectNotFoundError: If the loaded bag has no ``caller`` record.
        """
        with span("composition.load", subject=subject_id), Timer() as load_timer:
            loaded_data = loader.load(subject_id, self.spec_config)
        if not (loaded_data or {}).get("caller"):
            raise SubjectNotFoundError(f"Caller not found: {subject_id}", context={"subject": subject_id})
        return self.execute(loaded_data, load_time_ms=load_timer.elapsed_ms)

    def execute(self, loaded_data: Mapping[str, Any], *, load_time_ms: int = 0) -> CompositionResult:
        """Run the pipeline over an already-loaded bag."""
        with span("composition.specs"):
            resolved_specs = resolve_all_specs(loaded_data)
        with span("composition.shared_state"):
            shared_state = compute_shared_state(loaded_data, resolved_specs, self.spec_config)

        context = AssembledContext(
            loaded_data,
            resolved_specs=resolved_specs,
            shared_state=shared_state,
            spec_config=self.spec_config,
        )
        ordered = resolve_order(self.sections)
        by_id = {s.id: s for s in ordered}

        activated: List[str] = []
        skipped: List[str] = []
        reasons: Dict[str, str] = {}
        transform_errors: List[Dict[str, Any]] = []

        with span("composition.sections"), Timer() as transform_timer:
            for section in ordered:
                result = evaluate_activation(section, context, unknown_policy=self.unknown_condition_policy)
                if not result.activated:
                    apply_fallback(section, context)
                    skipped.append(section.id)
                    reasons[section.id] = f"SKIPPED: {result.describe()}"
                    logger.debug("Section '%s' skipped: %s", section.id, result.describe())
                    continue
                reasons[section.id] = result.describe()

                with span("composition.section", section=section.id):
                    value = self._run_section(section, context, by_id, transform_errors)
                if value is not MISSING:
                    context.store(section.output_key, value)
                activated.append(section.id)

        document = self._assemble(ordered, context)
        metadata = {
            "sectionsActivated": activated,
            "sectionsSkipped": skipped,
            "activationReasons": reasons,
            "loadTimeMs": load_time_ms,
            "transformTimeMs": transform_timer.elapsed_ms,
            "mergedTargetCount": merged_target_count(context.sections),
            "transformErrors": transform_errors,
        }
        logger.info(
            "Composition finished: %d activated, %d skipped, %d transform errors in %dms",
            len(activated),
            len(skipped),
            len(transform_errors),
            transform_timer.elapsed_ms,
        )

        return CompositionResult(
            document=document,
            caller_context=build_caller_context(context.sections, context.caller),
            sections=dict(context.sections),
            resolved_specs=resolved_specs,
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _run_section(
        self,
        section: SectionDefinition,
        context: AssembledContext,
        by_id: Mapping[str, SectionDefinition],
        errors: List[Dict[str, Any]],
    ) -> Any:
        raw = resolve_data_source(section, context)
        if section.transform:
            value = run_transform_chain(
                section.transform,
                raw,
                context,
                section,
                registry=self.registry,
                errors=errors,
            )
            # every step was unknown: never store the context itself
            if value is not context:
                return value
        if section.data_source == ALL_SOURCES:
            return collect_dependencies(section, context, dict(by_id))
        return raw

    def _assemble(self, ordered: Sequence[SectionDefinition], context: AssembledContext) -> Dict[str, Any]:
        document: Dict[str, Any] = {"_version": self.version_tag}
        for section in ordered:
            if section.output_key in context.sections:
                document[section.output_key] = strip_private_fields(
                    context.sections[section.output_key], self.private_prefix
                )
        document["agentIdentitySummary"] = build_agent_identity_summary(context.resolved_specs)
        return document


def execute_composition(
    loaded_data: Mapping[str, Any],
    sections: Optional[Sequence[Any]] = None,
    spec_config: Optional[Mapping[str, Any]] = None,
) -> CompositionResult:
    """One-shot helper: run ``sections`` (or the bundled list) over a bag."""
    return CompositionExecutor(sections, spec_config=spec_config).execute(loaded_data)


__all__ = ["CompositionExecutor", "execute_composition", "strip_private_fields"]
