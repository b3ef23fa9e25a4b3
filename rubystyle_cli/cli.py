"""Typer-based CLI for rubystyle."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import toml
import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config_manager import (
    ConfigError,
    coerce_value,
    load_config,
    reset_config,
    set_rule_option,
)
from .corrector import unified_diff
from .models import FileReport
from .parser import ParserUnavailableError
from .rules import available_rules
from .runner import StyleRunner, write_source

console = Console()

app = typer.Typer(
    help="💎 rubystyle: structural style checks for Ruby sources.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="⚙️  Configuration: rule options and file globs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config")

OUTPUT_FORMATS = ("text", "json")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"rubystyle v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """rubystyle: blank-line indentation, block brace spacing and exception variable checks."""
    pass


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _load_config_or_exit(config_path: Optional[Path]) -> Dict:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(f"❌ Configuration error: {exc}", err=True)
        raise typer.Exit(code=2)


def _print_text(reports: List[FileReport], fixed: bool) -> None:
    for report in reports:
        for error in report.parse_errors:
            typer.echo(f"{report.path}: warning: {error}")
        for offense in report.offenses:
            suffix = " [Correctable]" if offense.correctable else ""
            typer.echo(
                f"{report.path}:{offense.line}:{offense.column + 1}: "
                f"{offense.rule}: {offense.message}{suffix}"
            )

    offenses = sum(len(r.offenses) for r in reports)
    corrected = sum(r.corrected_count for r in reports)
    color = "green" if offenses == 0 else "red"
    summary = f"\n{len(reports)} file(s) inspected, [{color}]{offenses} offense(s)[/{color}] detected"
    if fixed:
        summary += f", [green]{corrected} corrected[/green]"
    console.print(summary)


def _print_json(reports: List[FileReport]) -> None:
    payload = {
        "files": [r.to_dict() for r in reports],
        "summary": {
            "files": len(reports),
            "offenses": sum(len(r.offenses) for r in reports),
            "corrected": sum(r.corrected_count for r in reports),
        },
    }
    typer.echo(json.dumps(payload, indent=2))


@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., exists=True, help="Files or directories to analyze."),
    fix: bool = typer.Option(False, "--fix", help="Write corrections back to the files."),
    diff: bool = typer.Option(False, "--diff", help="Show the corrections as a unified diff without writing."),
    only: Optional[List[str]] = typer.Option(None, "--only", help="Run only this rule (repeatable)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format: text or json."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """Analyze Ruby files and report (or fix) style offenses."""
    _configure_logging(verbose)
    if output_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"expected one of {', '.join(OUTPUT_FORMATS)}", param_hint="--format")
    unknown = [name for name in only or [] if name not in available_rules()]
    if unknown:
        raise typer.BadParameter(f"unknown rule(s): {', '.join(unknown)}", param_hint="--only")

    cfg = _load_config_or_exit(config_path)
    try:
        runner = StyleRunner(cfg, only=only)
    except ParserUnavailableError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=2)

    reports = runner.check_paths(paths, fix=fix)

    if fix:
        for report in reports:
            if report.changed:
                write_source(Path(report.path), report.corrected_source)
    elif diff and output_format == "text":
        for report in reports:
            if not any(o.correctable for o in report.offenses):
                continue
            preview = runner.autocorrect(report.original_source, report.path)
            typer.echo(unified_diff(report.original_source, preview.corrected_source, report.path), nl=False)

    if output_format == "json":
        _print_json(reports)
    else:
        _print_text(reports, fixed=fix)

    if any(not r.clean for r in reports):
        raise typer.Exit(code=1)


@app.command("rules")
def list_rules(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
):
    """List the available rules."""
    cfg = _load_config_or_exit(config_path)
    table = Table(title="Rules", show_header=True, show_lines=False)
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Autocorrect")
    table.add_column("Enabled")
    table.add_column("Description")

    for name, cls in available_rules().items():
        enabled = cfg["rules"].get(name, {}).get("enabled", True)
        table.add_row(
            name,
            "✅" if cls.autocorrectable else "no",
            "[green]yes[/green]" if enabled else "[red]no[/red]",
            cls.description,
        )
    console.print(table)


# ------------------------------------------------------------------
# config group
# ------------------------------------------------------------------

@config_app.command("show")
def config_show(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
):
    """Show the effective configuration (defaults merged with the config file)."""
    cfg = _load_config_or_exit(config_path)
    typer.echo(toml.dumps(cfg), nl=False)


@config_app.command("set")
def config_set(
    rule: str = typer.Argument(..., help="Rule name, e.g. Layout/BlankLineIndentation."),
    key: str = typer.Argument(..., help="Option name, e.g. indentation_width."),
    value: str = typer.Argument(..., help="New value (true/false, integers and strings)."),
):
    """Set a rule option in the user config file."""
    parsed = coerce_value(value)
    try:
        path = set_rule_option(rule, key, parsed)
    except ConfigError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(f"✅ Set {rule}.{key} = {parsed!r} in {path}")


@config_app.command("reset")
def config_reset():
    """Remove rule and file settings from the user config file."""
    try:
        path = reset_config()
    except ConfigError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(f"✅ Configuration reset in {path}")
