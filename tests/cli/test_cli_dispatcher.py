"""Command discovery and top-level dispatch."""
from __future__ import annotations

import pytest

from promptstack import __version__
from promptstack.cli._dispatcher import _strip_profile_flag, discover_commands, discover_domains, main


class TestDiscovery:
    def test_domains(self):
        assert set(discover_domains()) == {"compose", "sections", "template"}

    def test_commands_expose_entry_points(self):
        commands = discover_commands("sections")
        assert set(commands) == {"list", "order", "validate"}
        for info in commands.values():
            assert callable(info["main"])
            assert callable(info["register_args"])
        assert commands["order"]["summary"] == "Show the dependency-resolved execution order"

    def test_template_and_compose_commands(self):
        assert set(discover_commands("template")) == {"check", "render"}
        assert set(discover_commands("compose")) == {"run"}


class TestMain:
    def test_no_arguments_prints_help(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "usage: promptstack" in out
        assert "compose" in out

    def test_domain_without_command_prints_domain_help(self, capsys):
        assert main(["sections"]) == 0
        out = capsys.readouterr().out
        assert "order" in out
        assert "validate" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert capsys.readouterr().out.strip() == f"promptstack {__version__}"

    def test_profile_goes_to_stderr(self, capsys):
        assert main(["--profile", "sections", "order", "--json"]) == 0
        captured = capsys.readouterr()
        assert '"order"' in captured.out
        assert "Profiling (top spans):" in captured.err
        assert "- cli.total:" in captured.err


def test_profile_flag_only_before_domain():
    assert _strip_profile_flag(["--profile", "sections", "list", "--profile"]) == (
        ["sections", "list", "--profile"],
        True,
    )
    assert _strip_profile_flag(["sections", "list"]) == (["sections", "list"], False)
