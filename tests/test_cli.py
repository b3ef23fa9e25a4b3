"""Integration tests for CLI commands."""

import json
from pathlib import Path

import toml
from rich.console import Console
from typer.testing import CliRunner

from rubystyle_cli import __version__, cli
from rubystyle_cli.cli import app


runner = CliRunner()


class TestCheckCommand:
    """Tests for 'rstyle check'."""

    def test_clean_file(self, isolated_config: Path, sample_project: Path):
        result = runner.invoke(app, ["check", str(sample_project / "lib" / "clean.rb")])

        assert result.exit_code == 0
        assert "1 file(s) inspected" in result.stdout
        assert "0 offense(s)" in result.stdout

    def test_offenses_reported(self, isolated_config: Path, sample_project: Path):
        target = sample_project / "lib" / "messy.rb"
        result = runner.invoke(app, ["check", str(target)])

        assert result.exit_code == 1
        assert f"{target}:2:11: Layout/BlockDelimiterSpacing:" in result.stdout
        assert f"{target}:3:1: Layout/BlankLineIndentation:" in result.stdout
        assert "[Correctable]" in result.stdout
        assert "Style/GlobalExceptionVariables" in result.stdout
        assert "3 offense(s)" in result.stdout

    def test_directory(self, isolated_config: Path, sample_project: Path):
        result = runner.invoke(app, ["check", str(sample_project)])

        assert result.exit_code == 1
        assert "3 file(s) inspected" in result.stdout
        assert "ignored.rb" not in result.stdout

    def test_fix_writes_files(self, isolated_config: Path, sample_project: Path):
        rakefile = sample_project / "Rakefile"
        result = runner.invoke(app, ["check", str(rakefile), "--fix"])

        assert result.exit_code == 0
        assert rakefile.read_text() == "task(:default) {puts 'ok'}\n"
        assert "1 corrected" in result.stdout

    def test_diff_does_not_write(self, isolated_config: Path, sample_project: Path):
        rakefile = sample_project / "Rakefile"
        result = runner.invoke(app, ["check", str(rakefile), "--diff"])

        assert result.exit_code == 1
        assert "-task(:default){puts 'ok'}" in result.stdout
        assert "+task(:default) {puts 'ok'}" in result.stdout
        assert rakefile.read_text() == "task(:default){puts 'ok'}\n"

    def test_only(self, isolated_config: Path, sample_project: Path):
        target = sample_project / "lib" / "messy.rb"
        result = runner.invoke(app, ["check", str(target), "--only", "Style/GlobalExceptionVariables"])

        assert result.exit_code == 1
        assert "Layout/" not in result.stdout
        assert "1 offense(s)" in result.stdout

    def test_unknown_rule(self, isolated_config: Path, sample_project: Path):
        result = runner.invoke(app, ["check", str(sample_project), "--only", "Nope/Nothing"])

        assert result.exit_code == 2

    def test_json_format(self, isolated_config: Path, sample_project: Path):
        target = sample_project / "lib" / "messy.rb"
        result = runner.invoke(app, ["check", str(target), "--format", "json"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert payload["summary"]["offenses"] == 3
        assert payload["files"][0]["offenses"][0]["rule"] == "Layout/BlockDelimiterSpacing"

    def test_invalid_config(self, isolated_config: Path, sample_project: Path, temp_dir: Path):
        bad = temp_dir / "bad.toml"
        bad.write_text('[rules."Layout/BlankLineIndentation"]\nindentation_width = -1\n')

        result = runner.invoke(app, ["check", str(sample_project), "--config", str(bad)])

        assert result.exit_code == 2
        assert "indentation_width" in result.output

    def test_config_options_applied(self, isolated_config: Path, temp_dir: Path):
        source = temp_dir / "spaces.rb"
        source.write_text("def foo\n  bar\n  \n  baz\nend\n")
        (Path.cwd() / ".rubystyle.toml").write_text(
            '[rules."Layout/BlankLineIndentation"]\nindentation_width = 2\nindentation_style = "space"\n'
        )

        result = runner.invoke(app, ["check", str(source)])

        assert result.exit_code == 0

    def test_missing_path(self, isolated_config: Path):
        result = runner.invoke(app, ["check", "/nonexistent/file.rb"])

        assert result.exit_code != 0


class TestRulesCommand:
    """Tests for 'rstyle rules'."""

    def test_lists_rules(self, isolated_config: Path):
        result = runner.invoke(app, ["rules"])

        assert result.exit_code == 0
        assert "Layout/BlankLineIndentation" in result.stdout
        assert "Layout/BlockDelimiterSpacing" in result.stdout
        assert "Style/GlobalExceptionVariables" in result.stdout

    def test_rule_names_not_wrapped_at_80_columns(self, isolated_config: Path, monkeypatch):
        monkeypatch.setattr(cli, "console", Console(width=80))

        result = runner.invoke(app, ["rules"])

        assert result.exit_code == 0
        for name in ("Layout/BlankLineIndentation", "Layout/BlockDelimiterSpacing", "Style/GlobalExceptionVariables"):
            assert name in result.stdout


class TestConfigCommands:
    """Tests for 'rstyle config'."""

    def test_show_defaults(self, isolated_config: Path):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        shown = toml.loads(result.stdout)
        assert shown["rules"]["Layout/BlankLineIndentation"]["indentation_style"] == "tab"

    def test_set_and_reset(self, isolated_config: Path):
        result = runner.invoke(app, ["config", "set", "Layout/BlankLineIndentation", "indentation_width", "2"])

        assert result.exit_code == 0
        assert toml.load(isolated_config)["rules"]["Layout/BlankLineIndentation"]["indentation_width"] == 2

        result = runner.invoke(app, ["config", "reset"])

        assert result.exit_code == 0
        assert "rules" not in toml.load(isolated_config)

    def test_set_invalid(self, isolated_config: Path):
        result = runner.invoke(app, ["config", "set", "Layout/BlankLineIndentation", "indentation_style", "mixed"])

        assert result.exit_code == 2
        assert not isolated_config.exists()


class TestVersion:
    """Tests for '--version'."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout
