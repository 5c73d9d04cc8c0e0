"""Pick the identity, content and voice specs for a subject.

Playbooks are searched first, in the order they were loaded, then the
system specs. The first match for each role wins.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .types import ResolvedSpecs

logger = logging.getLogger(__name__)


def _is_identity(spec: Mapping[str, Any]) -> bool:
    return spec.get("specRole") == "IDENTITY" and spec.get("domain") != "voice"


def _is_content(spec: Mapping[str, Any]) -> bool:
    return spec.get("specRole") == "CONTENT"


def _is_voice(spec: Mapping[str, Any]) -> bool:
    role = spec.get("specRole")
    return role == "VOICE" or (role == "IDENTITY" and spec.get("domain") == "voice")


def _playbook_specs(playbooks: Optional[Iterable[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    specs: List[Dict[str, Any]] = []
    for playbook in playbooks or []:
        for item in playbook.get("items") or []:
            spec = item.get("spec")
            if spec:
                specs.append(spec)
    return specs


def resolve_specs(
    playbooks: Optional[Iterable[Mapping[str, Any]]],
    system_specs: Optional[Iterable[Mapping[str, Any]]],
) -> ResolvedSpecs:
    resolved = ResolvedSpecs()
    for spec in _playbook_specs(playbooks) + list(system_specs or []):
        if resolved.identity is None and _is_identity(spec):
            resolved.identity = dict(spec)
        if resolved.content is None and _is_content(spec):
            resolved.content = dict(spec)
        if resolved.voice is None and _is_voice(spec):
            resolved.voice = dict(spec)
        if resolved.identity and resolved.content and resolved.voice:
            break
    return resolved


def find_spec_by_slug(slug: str, candidates: Iterable[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    wanted = slug.lower()
    for spec in candidates:
        if str(spec.get("slug") or "").lower() == wanted:
            return dict(spec)
    return None


def merge_identity_spec(overlay: Mapping[str, Any], base: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Layer an identity overlay on top of the base spec it extends.

    Parameters merge by id (overlay wins, base-only entries are inherited)
    and each parameter's ``config`` is flattened into the top-level
    config. Constraints stack base first. Name and slug stay the
    overlay's.
    """
    if not base:
        return dict(overlay)

    base_config = dict(base.get("config") or {})
    overlay_config = dict(overlay.get("config") or {})

    merged_params: Dict[str, Dict[str, Any]] = {}
    order: List[str] = []
    for param in list(base_config.get("parameters") or []) + list(overlay_config.get("parameters") or []):
        pid = str(param.get("id"))
        if pid not in merged_params:
            order.append(pid)
        merged_params[pid] = dict(param)
    parameters = [merged_params[pid] for pid in order]

    flat_base: Dict[str, Any] = {}
    flat_overlay: Dict[str, Any] = {}
    overlay_ids = {str(p.get("id")) for p in overlay_config.get("parameters") or []}
    for param in parameters:
        target = flat_overlay if str(param.get("id")) in overlay_ids else flat_base
        target.update(param.get("config") or {})

    config: Dict[str, Any] = {}
    config.update(base_config)
    config.update(flat_base)
    config.update(overlay_config)
    config.update(flat_overlay)
    config["parameters"] = parameters
    config["constraints"] = list(base_config.get("constraints") or []) + list(overlay_config.get("constraints") or [])

    merged = dict(overlay)
    merged["config"] = config
    merged["description"] = overlay.get("description") or base.get("description")
    return merged


def resolve_all_specs(loaded_data: Mapping[str, Any]) -> ResolvedSpecs:
    """Resolve specs and apply identity inheritance from the loaded bag."""
    playbooks = loaded_data.get("playbooks") or []
    system_specs = loaded_data.get("systemSpecs") or []
    resolved = resolve_specs(playbooks, system_specs)

    identity = resolved.identity
    if identity and identity.get("extendsAgent"):
        base = find_spec_by_slug(str(identity["extendsAgent"]), list(system_specs) + _playbook_specs(playbooks))
        if base is None:
            logger.warning("Identity '%s' extends unknown spec '%s'", identity.get("name"), identity["extendsAgent"])
        resolved.identity = merge_identity_spec(identity, base)

    logger.info(
        "Playbooks stacked: %d (%s)",
        len(playbooks),
        ", ".join(str(p.get("name")) for p in playbooks) or "none",
    )
    logger.info("Identity: %s", (resolved.identity or {}).get("name") or "NONE")
    logger.info("Content: %s", (resolved.content or {}).get("name") or "NONE")
    logger.info("Voice: %s", (resolved.voice or {}).get("name") or "NONE")
    return resolved


__all__ = ["find_spec_by_slug", "merge_identity_spec", "resolve_all_specs", "resolve_specs"]
