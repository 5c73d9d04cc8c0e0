from __future__ import annotations

import json

from promptstack.cli._dispatcher import main

EACH = "{{#each items}}{{this.name}},{{/each}}"
ITEMS = '{"items": [{"name": "a"}, {"name": "b"}]}'


class TestTemplateRender:
    def test_inline_data(self, capsys):
        assert main(["template", "render", EACH, "--data", ITEMS]) == 0
        assert capsys.readouterr().out == "a,\nb,\n"

    def test_json_report(self, capsys):
        assert main(["template", "render", "{{#if a}}{{name}}{{/if}}{{who}}", "--data", '{"a": 1, "name": "Ada"}', "--json"]) == 0
        assert json.loads(capsys.readouterr().out) == {
            "text": "Ada",
            "variablesResolved": ["name"],
            "variablesMissing": ["who"],
            "blocksExpanded": 1,
            "blocksDropped": 0,
        }

    def test_files(self, capsys, tmp_path):
        template = tmp_path / "fragment.txt"
        template.write_text("Hello {{user.name}}", encoding="utf-8")
        data = tmp_path / "data.yaml"
        data.write_text("user:\n  name: Ada\n", encoding="utf-8")
        assert main(["template", "render", f"@{template}", "--data", f"@{data}"]) == 0
        assert capsys.readouterr().out == "Hello Ada\n"

    def test_value_preview(self, capsys):
        template = "{{#if high}}High {{param.name}} ({{value}}){{/if}}{{#if low}}Low{{/if}}"
        assert main(["template", "render", template, "--value", "0.82", "--param-name", "Openness"]) == 0
        assert capsys.readouterr().out == "High Openness (0.82)\n"

    def test_value_preview_uses_configured_thresholds(self, capsys, write_project_config):
        write_project_config("templates.yaml", "templates:\n  labelThresholds:\n    high: 0.9\n")
        assert main(["template", "render", "{{label}}", "--value", "0.82", "--json"]) == 0
        assert json.loads(capsys.readouterr().out) == {"status": "success", "text": "medium"}

    def test_data_must_be_an_object(self, capsys):
        assert main(["template", "render", "x", "--data", "[1, 2]"]) == 1
        assert "Data must be a JSON/YAML object" in capsys.readouterr().err

    def test_invalid_json(self, capsys):
        assert main(["template", "render", "x", "--data", "{oops"]) == 1
        assert capsys.readouterr().err.startswith("Error:")


class TestTemplateCheck:
    def test_valid(self, capsys):
        assert main(["template", "check", EACH]) == 0
        assert capsys.readouterr().out.strip() == "✅ Template valid"

    def test_errors(self, capsys):
        assert main(["template", "check", "{{#if a}}open"]) == 1
        out = capsys.readouterr().out
        assert "❌ unclosed at 0: '{{#if a}}' is never closed" in out
        assert out.strip().endswith("❌ Template invalid")

    def test_warnings_and_strict(self, capsys):
        assert main(["template", "check", "{{this}}"]) == 0
        assert "loop-var-outside" in capsys.readouterr().out
        assert main(["template", "check", "{{this}}", "--strict"]) == 1

    def test_json_with_sample_data(self, capsys):
        assert main(["template", "check", "{{name}} {{ghost}}", "--data", '{"name": "Ada"}', "--json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["valid"] is True
        assert report["warningCount"] == 1
        assert report["issues"][0]["code"] == "unknown-path"
        assert report["issues"][0]["position"] == 9
