from __future__ import annotations

import json

import pytest

from promptstack.cli._dispatcher import main
from promptstack.core.composition import default_sections


def _section(sid, **extra):
    raw = {
        "id": sid,
        "dataSource": sid,
        "outputKey": sid,
        "activateWhen": {"condition": "always"},
        "fallback": {"action": "omit"},
    }
    raw.update(extra)
    return raw


@pytest.fixture
def write_sections(tmp_path):
    def _write(sections, name="sections.json"):
        path = tmp_path / name
        path.write_text(json.dumps({"sections": sections}), encoding="utf-8")
        return str(path)

    return _write


class TestSectionsList:
    def test_bundled_list(self, capsys):
        assert main(["sections", "list"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "20 sections:"
        assert lines[1].split()[0] == "caller_info"

    def test_json(self, capsys):
        assert main(["sections", "list", "--json"]) == 0
        sections = json.loads(capsys.readouterr().out)["sections"]
        assert [s["id"] for s in sections] == [s.id for s in default_sections()]
        quick = next(s for s in sections if s["id"] == "quick_start")
        assert quick["outputKey"] == "_quickStart"
        assert quick["transform"] == ["computeQuickStart"]
        assert quick["fallback"] == "emptyObject"

    def test_configured_file(self, capsys, write_sections, write_project_config):
        path = write_sections([_section("only")])
        write_project_config("composition.yaml", f"composition:\n  sectionsFile: '{path}'\n")
        assert main(["sections", "list", "--json"]) == 0
        assert [s["id"] for s in json.loads(capsys.readouterr().out)["sections"]] == ["only"]


class TestSectionsOrder:
    def test_dependencies_run_first(self, capsys):
        assert main(["sections", "order", "--json"]) == 0
        order = json.loads(capsys.readouterr().out)["order"]
        position = {sid: i for i, sid in enumerate(order)}
        sections = default_sections()
        assert sorted(order) == sorted(s.id for s in sections)
        for section in sections:
            for dep in section.depends_on:
                assert position[dep] < position[section.id]

    def test_text_output(self, capsys, write_sections):
        path = write_sections([_section("b", dependsOn=["a"]), _section("a")])
        assert main(["sections", "order", "--sections", path]) == 0
        assert capsys.readouterr().out.splitlines() == ["  1. a", "  2. b (after a)"]

    def test_cycle_terminates(self, capsys, write_sections):
        path = write_sections([_section("a", dependsOn=["b"]), _section("b", dependsOn=["a"])])
        assert main(["sections", "order", "--sections", path]) == 0
        assert capsys.readouterr().out.splitlines() == ["  1. b (after a)", "  2. a (after b)"]

    def test_unreadable_file(self, capsys, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("sections: [\n", encoding="utf-8")
        assert main(["sections", "order", "--sections", str(path)]) == 1
        assert "Cannot parse section file" in capsys.readouterr().err


class TestSectionsValidate:
    def test_bundled_list_is_valid(self, capsys):
        assert main(["sections", "validate"]) == 0
        assert capsys.readouterr().out.strip() == "✅ 20 sections valid"

    def test_graph_errors(self, capsys, write_sections):
        path = write_sections(
            [
                _section("a", dependsOn=["ghost"], transform="noSuchTransform"),
                _section("a"),
            ]
        )
        assert main(["sections", "validate", "--sections", path, "--json"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["valid"] is False
        assert sorted(i["code"] for i in report["issues"]) == [
            "dangling-dependency",
            "duplicate-id",
            "unknown-transform",
        ]

    def test_warnings_fail_only_when_strict(self, capsys, write_sections):
        path = write_sections([_section("a", activateWhen={"condition": "moonIsFull"})])
        assert main(["sections", "validate", "--sections", path]) == 0
        assert "unknown-condition" in capsys.readouterr().out
        assert main(["sections", "validate", "--sections", path, "--strict"]) == 1

    def test_schema_error(self, capsys, write_sections):
        path = write_sections([{"id": "a"}])
        assert main(["sections", "validate", "--sections", path, "--json"]) == 1
        error = json.loads(capsys.readouterr().err)
        assert error["error"] == "schema_error"
        assert error["details"]["code"] == "SectionConfigError"

    def test_missing_file(self, capsys, tmp_path):
        assert main(["sections", "validate", "--sections", str(tmp_path / "none.yaml")]) == 1
        assert "Section file not found" in capsys.readouterr().err
