"""Layered configuration: bundled defaults, project files, environment.

Every test runs against an isolated project root (see conftest).
"""
from __future__ import annotations

from pathlib import Path

import pytest

from promptstack.core.config import ConfigManager, clear_all_caches, get_cached_config
from promptstack.core.config import cache as config_cache
from promptstack.core.exceptions import ConfigError
from promptstack.core.schemas import SchemaValidationError, load_schema, validate_payload_safe
from promptstack.core.utils.paths import resolve_project_root


class TestLayers:
    def test_bundled_defaults(self):
        manager = ConfigManager()
        cfg = manager.load_config()
        assert cfg["composition"]["versionTag"] == "2.0"
        assert cfg["composition"]["unknownConditionPolicy"] == "open"
        assert manager.get("logging.level") == "WARNING"
        assert manager.get("composition.specConfig.thresholds.high") == 0.65
        assert manager.get("composition.nothing.here", 5) == 5

    def test_project_file_overrides_defaults(self, write_project_config):
        write_project_config("composition.yaml", "composition:\n  versionTag: '3.1'\n")
        manager = ConfigManager()
        assert manager.get("composition.versionTag") == "3.1"
        assert manager.get("composition.privatePrefix") == "_"

    def test_project_files_merge_alphabetically(self, write_project_config):
        write_project_config("a.yaml", "composition:\n  specConfig:\n    tags: [x]\n")
        write_project_config("b.yml", "composition:\n  specConfig:\n    tags: ['+', y]\n")
        spec_config = ConfigManager().get("composition.specConfig")
        assert spec_config["tags"] == ["x", "y"]
        assert spec_config["thresholds"] == {"high": 0.65, "low": 0.35}

    def test_non_mapping_file_is_rejected(self, write_project_config):
        write_project_config("broken.yaml", "- just\n- a list\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            ConfigManager().load_config()


class TestEnvironmentOverrides:
    def test_env_wins_and_matches_keys_case_insensitively(self, monkeypatch, write_project_config):
        write_project_config("composition.yaml", "composition:\n  privatePrefix: '$'\n")
        monkeypatch.setenv("PROMPTSTACK_COMPOSITION__PRIVATEPREFIX", "__")
        cfg = ConfigManager().load_config()
        assert cfg["composition"]["privatePrefix"] == "__"
        assert "COMPOSITION" not in cfg

    def test_new_nested_keys_are_created(self, monkeypatch):
        monkeypatch.setenv("PROMPTSTACK_composition__specConfig__extra__depth", "2")
        assert ConfigManager().get("composition.specConfig.extra") == {"depth": 2}

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("-7", -7),
            ("0.5", 0.5),
            (".25", 0.25),
            ('["a", 1]', ["a", 1]),
            ('{"k": "v"}', {"k": "v"}),
            ("null", None),
            ("None", None),
            ("  plain text ", "plain text"),
            ("[not json", "[not json"),
        ],
    )
    def test_value_coercion(self, monkeypatch, raw, expected):
        monkeypatch.setenv("PROMPTSTACK_composition__specConfig__sample", raw)
        assert ConfigManager().get("composition.specConfig.sample") == expected

    def test_project_root_variable_is_not_an_override(self):
        assert "PROJECT_ROOT" not in ConfigManager().load_config()

    def test_coerced_value_must_still_satisfy_schema(self, monkeypatch):
        monkeypatch.setenv("PROMPTSTACK_composition__versionTag", "3")
        with pytest.raises(SchemaValidationError) as excinfo:
            ConfigManager().load_config()
        assert excinfo.value.errors[0].startswith("composition.versionTag:")
        assert ConfigManager().load_config(validate=False)["composition"]["versionTag"] == 3

    def test_empty_segment_fails_strict_load(self, monkeypatch):
        monkeypatch.setenv("PROMPTSTACK_composition____x", "1")
        with pytest.raises(ConfigError, match="empty segment"):
            ConfigManager().load_config()
        assert "x" not in ConfigManager().load_config(validate=False)["composition"]

    def test_path_through_scalar_fails(self, monkeypatch):
        monkeypatch.setenv("PROMPTSTACK_composition__versionTag__minor", "1")
        with pytest.raises(ConfigError, match="non-mapping value at 'versionTag'"):
            ConfigManager().load_config(validate=False)


class TestCache:
    def test_same_object_until_inputs_change(self, monkeypatch):
        first = get_cached_config()
        assert get_cached_config() is first
        assert config_cache.is_cached()

        monkeypatch.setenv("PROMPTSTACK_logging__level", "DEBUG")
        assert not config_cache.is_cached()
        assert get_cached_config()["logging"]["level"] == "DEBUG"

    def test_project_file_change_is_picked_up(self, isolated_project_root):
        assert get_cached_config()["composition"]["versionTag"] == "2.0"
        cfg_dir = isolated_project_root / ".promptstack" / "config"
        cfg_dir.mkdir(parents=True)
        (cfg_dir / "composition.yaml").write_text("composition:\n  versionTag: '9'\n", encoding="utf-8")
        assert get_cached_config()["composition"]["versionTag"] == "9"

    def test_clear_runs_registered_clearers(self, monkeypatch):
        calls = []
        monkeypatch.setitem(config_cache._cache_clearers, "sample", lambda: calls.append(1))
        get_cached_config()
        clear_all_caches()
        assert calls == [1]
        assert not config_cache.is_cached()


class TestProjectRoot:
    def test_env_root(self, isolated_project_root):
        assert resolve_project_root() == isolated_project_root.resolve()

    def test_env_root_must_exist(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PROMPTSTACK_PROJECT_ROOT", str(tmp_path / "missing"))
        with pytest.raises(ConfigError, match="missing path"):
            resolve_project_root()

    def test_env_root_must_not_be_config_dir(self, monkeypatch, tmp_path):
        config_dir = tmp_path / ".promptstack"
        config_dir.mkdir()
        monkeypatch.setenv("PROMPTSTACK_PROJECT_ROOT", str(config_dir))
        with pytest.raises(ConfigError, match="project root"):
            resolve_project_root()

    def test_nearest_marked_ancestor(self, monkeypatch, tmp_path):
        (tmp_path / ".promptstack").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.delenv("PROMPTSTACK_PROJECT_ROOT")
        monkeypatch.chdir(nested)
        assert resolve_project_root() == tmp_path.resolve()


class TestSchemas:
    def test_bundled_schema_rejects_bad_policy(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            ConfigManager().validate_schema({"composition": {"unknownConditionPolicy": "maybe"}})
        assert excinfo.value.errors[0].startswith("composition.unknownConditionPolicy:")
        assert "Validation failed against schema 'config'" in str(excinfo.value)

    def test_schema_name_forms(self):
        assert load_schema("config") == load_schema("config.schema.yaml")

    def test_project_schema_shadows_bundled(self, isolated_project_root: Path):
        schemas = isolated_project_root / ".promptstack" / "schemas"
        schemas.mkdir(parents=True)
        (schemas / "config.schema.yaml").write_text("type: object\nrequired: [custom]\n", encoding="utf-8")
        errors = validate_payload_safe({}, "config", repo_root=isolated_project_root)
        assert errors == ["'custom' is a required property"]

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError, match="Schema not found: nothing.schema.yaml"):
            load_schema("nothing")
