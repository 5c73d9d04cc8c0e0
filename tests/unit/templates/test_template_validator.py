from __future__ import annotations

import pytest

from promptstack.core.exceptions import TemplateValidationError
from promptstack.core.templates import validate_template


def codes(report):
    return [(issue.code, issue.severity, issue.position) for issue in report.issues]


class TestStructuralErrors:
    def test_clean_template(self):
        report = validate_template("Hi {{name}}{{#if a}}x{{/if}}{{#each xs}}{{this}}{{/each}}")
        assert report.ok
        assert report.issues == []

    @pytest.mark.parametrize("template", [None, ""])
    def test_empty_template(self, template):
        assert validate_template(template).ok

    def test_unterminated_open_brace(self):
        report = validate_template("{{a}} and {{b")
        assert codes(report) == [("unterminated", "error", 10)]

    def test_if_without_path(self):
        report = validate_template("{{#if}}x")
        assert codes(report) == [("malformed", "error", 0)]
        assert report.issues[0].message == "'{{#if}}' is missing a path"

    def test_unrecognised_token(self):
        report = validate_template("x {{foo bar}}")
        assert codes(report) == [("malformed", "error", 2)]
        assert report.issues[0].message == "Unrecognised directive '{{foo bar}}'"

    def test_close_without_opener(self):
        report = validate_template("text{{/if}}")
        assert codes(report) == [("unmatched-close", "error", 4)]
        assert report.issues[0].message == "'{{/if}}' has no opening tag"

    def test_close_of_wrong_kind(self):
        report = validate_template("{{#if a}}x{{/each}}")
        assert codes(report) == [("unmatched-close", "error", 10), ("unclosed", "error", 0)]
        assert report.issues[0].message == "'{{/each}}' does not match the open 'if' block"
        assert report.issues[1].message == "'{{#if a}}' is never closed"

    def test_unclosed_block(self):
        report = validate_template("{{#each xs}}x")
        assert codes(report) == [("unclosed", "error", 0)]

    def test_block_closed_implicitly(self):
        report = validate_template("{{#if a}}{{#each xs}}{{/if}}")
        assert codes(report) == [("unclosed", "error", 9)]
        assert report.issues[0].message == "Block 'xs' closed implicitly by '/if'"

    def test_section_blocks_close_by_name(self):
        assert validate_template("{{#param}}{{name}}{{/param}}").ok
        assert not validate_template("{{#param}}{{name}}{{/other}}").ok


class TestWarnings:
    def test_loop_variables_outside_each(self):
        report = validate_template("{{this.name}} {{@index}}")
        assert [i.code for i in report.warnings] == ["loop-var-outside", "loop-var-outside"]
        assert report.warnings[0].message == "'{{this.name}}' used outside an #each block"
        assert report.ok

    def test_loop_variables_inside_each(self):
        assert validate_template("{{#each xs}}{{this}}{{@index}}{{/each}}").issues == []

    def test_unknown_paths_checked_only_with_data(self):
        template = "{{#param}}{{name}}{{/param}}{{missing}}{{param.name}}"
        assert validate_template(template).issues == []

        report = validate_template(template, {"param": {"name": "warmth"}})
        assert codes(report) == [("unknown-path", "warning", 28)]
        assert report.warnings[0].message == "Variable 'missing' not found in data"

    def test_list_sections_scope_their_elements(self):
        report = validate_template("{{#items}}{{name}}{{/items}}", {"items": [{"name": "a"}]})
        assert report.issues == []


class TestReport:
    def test_to_dict(self):
        report = validate_template("{{/if}}{{this}}")
        assert report.to_dict() == {
            "ok": False,
            "errorCount": 1,
            "warningCount": 1,
            "issues": [
                {"code": "unmatched-close", "severity": "error", "message": "'{{/if}}' has no opening tag", "position": 0},
                {
                    "code": "loop-var-outside",
                    "severity": "warning",
                    "message": "'{{this}}' used outside an #each block",
                    "position": 7,
                },
            ],
        }

    def test_raise_for_errors(self):
        with pytest.raises(TemplateValidationError, match=r"Template has 1 error\(s\)") as excinfo:
            validate_template("{{#if a}}").raise_for_errors()
        assert isinstance(excinfo.value, ValueError)
        assert excinfo.value.context["issues"][0]["code"] == "unclosed"

    def test_warnings_do_not_raise(self):
        validate_template("{{this}}").raise_for_errors()
