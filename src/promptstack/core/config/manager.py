"""
promptstack configuration management (layered YAML).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from promptstack.core.exceptions import ConfigError
from promptstack.core.utils.io import iter_yaml_files, read_yaml
from promptstack.core.utils.merge import deep_merge
from promptstack.core.utils.paths import PROJECT_ROOT_ENV, get_project_config_dir, resolve_project_root
from promptstack.core.utils.profiling import span
from promptstack.data import get_data_path

from .cache import ENV_PREFIX, get_cached_config

logger = logging.getLogger(__name__)

# Environment variables under the prefix that are not config overrides.
_RESERVED_ENV_KEYS = frozenset({PROJECT_ROOT_ENV})


class ConfigManager:
    """Load, merge, and validate promptstack configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: PROMPTSTACK_<section>__<key>[__<key>...]
    2. Project config: <project>/.promptstack/config/*.yaml (alphabetical order)
    3. Bundled defaults: promptstack.data/config/*.yaml (alphabetical order)
    """

    def __init__(self, repo_root: Optional[Path] = None) -> None:
        self.repo_root = Path(repo_root).resolve() if repo_root else resolve_project_root()
        self.core_config_dir = get_data_path("config")
        self.project_config_dir = get_project_config_dir(self.repo_root)

    # ========== Layer loading ==========

    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        for path in iter_yaml_files(directory):
            data = read_yaml(path, default={}, raise_on_error=True)
            if not isinstance(data, dict):
                raise ConfigError(
                    f"Config file must contain a mapping: {path}",
                    context={"path": str(path), "type": type(data).__name__},
                )
            cfg = deep_merge(cfg, data)
        return cfg

    # ========== Environment overrides ==========

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d+", s):
            return int(s)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?(\d+\.\d*|\d*\.\d+)", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        if value.strip().lower() in {"null", "none"}:
            return None
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str, *, strict: bool) -> List[str]:
        segments = raw.split("__")
        if any(seg == "" for seg in segments):
            if strict:
                raise ConfigError(
                    f"Malformed {ENV_PREFIX}* key: empty segment in '{raw}'",
                    context={"key": raw},
                )
            return []
        return segments

    def _iter_env_overrides(self, *, strict: bool) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ):
            if not key.startswith(ENV_PREFIX) or key in _RESERVED_ENV_KEYS:
                continue
            path = self._parse_env_key(key[len(ENV_PREFIX):], strict=strict)
            if path:
                yield path, self._coerce_type(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[str], value: Any) -> None:
        # Segments match existing keys case-insensitively so that
        # PROMPTSTACK_COMPOSITION__VERSIONTAG reaches composition.versionTag.
        current = root
        for i, part in enumerate(path):
            existing = {k.lower(): k for k in current if isinstance(k, str)}
            key = existing.get(part.lower(), part)
            if i == len(path) - 1:
                current[key] = value
                return
            child = current.get(key)
            if child is None:
                child = {}
                current[key] = child
            if not isinstance(child, dict):
                raise ConfigError(
                    f"Environment override path traverses a non-mapping value at '{key}'",
                    context={"path": ".".join(path)},
                )
            current = child

    def apply_env_overrides(self, cfg: Dict[str, Any], *, strict: bool) -> None:
        for path, typed_value in self._iter_env_overrides(strict=strict):
            logger.debug("Applying env override %s", ".".join(path))
            self._set_nested(cfg, path, typed_value)

    # ========== Loading ==========

    def validate_schema(self, config: Dict[str, Any]) -> None:
        from promptstack.core.schemas.validation import validate_payload

        validate_payload(config, "config", repo_root=self.repo_root)

    def _load_config_uncached(self, validate: bool = True) -> Dict[str, Any]:
        with span("config.load.uncached"):
            cfg: Dict[str, Any] = {}
            cfg = self._load_directory(self.core_config_dir, cfg)
            cfg = self._load_directory(self.project_config_dir, cfg)
            self.apply_env_overrides(cfg, strict=validate)
            if validate:
                self.validate_schema(cfg)
            return cfg

    def _dirs_overridden(self) -> bool:
        return (
            self.core_config_dir != get_data_path("config")
            or self.project_config_dir != get_project_config_dir(self.repo_root)
        )

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Load configuration, using the central cache when possible.

        Returned dict should be treated as immutable.
        """
        # Tests repoint the directory attributes; the shared cache would
        # ignore that, so load directly in that case.
        if self._dirs_overridden():
            cfg = self._load_config_uncached(validate=False)
        else:
            cfg = get_cached_config(repo_root=self.repo_root)
        if validate:
            _ = list(self._iter_env_overrides(strict=True))
            with span("config.load.validate"):
                self.validate_schema(cfg)
        return cfg

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-notation key.

        Example:
            >>> ConfigManager().get("composition.versionTag")
            '2.0'
        """
        current: Any = self.load_config(validate=False)
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current


__all__ = ["ConfigManager"]
