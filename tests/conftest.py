"""Pytest configuration and fixtures for rubystyle tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator, List

import pytest

from rubystyle_cli.models import Offense
from rubystyle_cli.parser import RubyParser
from rubystyle_cli.rules import AnalysisUnit, Rule


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(scope="session")
def ruby_parser() -> RubyParser:
    """One tree-sitter Ruby parser shared by the whole session."""
    return RubyParser()


@pytest.fixture
def inspect_source(ruby_parser: RubyParser) -> Callable[[Rule, str], List[Offense]]:
    """Parse *source* and run a single rule over it."""

    def _inspect(rule: Rule, source: str) -> List[Offense]:
        tree = ruby_parser.parse(source)
        return rule.check(AnalysisUnit.from_tree(tree))

    return _inspect


@pytest.fixture
def isolated_config(temp_dir: Path, monkeypatch) -> Path:
    """Point the user config file into a temp dir and run from an empty cwd."""
    config_file = temp_dir / "home" / "config.toml"
    workdir = temp_dir / "work"
    workdir.mkdir()

    monkeypatch.setattr("rubystyle_cli.config.CONFIG_FILE", config_file)
    monkeypatch.setattr("rubystyle_cli.config_manager.CONFIG_FILE", config_file)
    monkeypatch.chdir(workdir)

    return config_file


@pytest.fixture
def sample_project(temp_dir: Path) -> Path:
    """A small Ruby project with one clean and one offending file."""
    project = temp_dir / "project"
    (project / "lib").mkdir(parents=True)
    (project / "vendor" / "gem").mkdir(parents=True)

    (project / "lib" / "clean.rb").write_text(
        "class Greeter\n"
        "\tdef greet(names)\n"
        "\t\tnames.each{|name| puts name}\n"
        "\t\t\n"
        "\t\tnil\n"
        "\tend\n"
        "end\n"
    )
    (project / "lib" / "messy.rb").write_text(
        "def run\n"
        "\titems.map {|x| x}\n"
        "\n"
        "\tlog($!)\n"
        "end\n"
    )
    (project / "Rakefile").write_text("task(:default){puts 'ok'}\n")
    (project / "vendor" / "gem" / "ignored.rb").write_text("foo{bar}\n")
    (project / "README.md").write_text("# not ruby\n")

    return project
