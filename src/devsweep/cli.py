"""CLI interface for devsweep."""

from __future__ import annotations

import functools
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Callable

import click

from devsweep.config import (
    DEFAULT_CONFIG,
    PartialConfig,
    RunConfig,
    SortKey,
    default_config_path,
    format_config,
    merge,
    parse_project_types,
    read_config_file,
    write_config_template,
)
from devsweep.core.engine import SweepEngine
from devsweep.errors import DevSweepError
from devsweep.models.clean_result import CleanupReport
from devsweep.models.project import Project, ProjectType
from devsweep.models.scan_result import ScanError
from devsweep.report import build_report
from devsweep.utils import format_elapsed, format_size

_PROJECT_TYPE_CHOICES = ["all", *(t.value for t in ProjectType)]


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Report configuration and startup errors as ``Error: ...`` and exit 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except DevSweepError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    return wrapper


def _scan_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``scan`` and ``clean``."""
    options = [
        click.argument("directory", required=False, type=click.Path(path_type=Path)),
        click.option(
            "--project-type",
            "-p",
            "project_types",
            multiple=True,
            type=click.Choice(_PROJECT_TYPE_CHOICES, case_sensitive=False),
            help="Only include these project types (repeatable, default: all)",
        ),
        click.option("--keep-size", "-s", default=None, help="Ignore projects with artifacts smaller than SIZE (e.g. 50MB, 1GiB)"),
        click.option(
            "--keep-days",
            "-d",
            type=click.IntRange(min=0),
            default=None,
            help="Ignore projects whose artifacts changed within DAYS days",
        ),
        click.option("--sort", type=click.Choice([k.value for k in SortKey]), default=None, help="Sort order"),
        click.option("--reverse", is_flag=True, help="Reverse the sort order"),
        click.option("--threads", "-t", type=click.IntRange(min=0), default=None, help="Worker threads (0 = all cores)"),
        click.option("--skip", multiple=True, help="Directory name to skip (repeatable)"),
        click.option("--ignore", multiple=True, help="Directory name to ignore entirely (repeatable)"),
        click.option("--json", "as_json", is_flag=True, help="Output as JSON"),
        click.option(
            "--config",
            "config_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Config file to use instead of the default location",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _cli_layer(
    *,
    directory: Path | None,
    project_types: tuple[str, ...],
    keep_size: str | None,
    keep_days: int | None,
    sort: str | None,
    reverse: bool,
    threads: int | None,
    skip: tuple[str, ...],
    ignore: tuple[str, ...],
    as_json: bool,
    verbose: bool,
    dry_run: bool = False,
    interactive: bool = False,
    keep_executables: bool = False,
    permanent: bool = False,
    yes: bool = False,
) -> PartialConfig:
    return PartialConfig(
        target=directory,
        project_types=parse_project_types(project_types) if project_types else None,
        keep_size=keep_size,
        keep_days=keep_days,
        sort=SortKey(sort) if sort else None,
        reverse=reverse,
        threads=threads,
        skip=list(skip),
        ignore=list(ignore),
        json=as_json,
        verbose=verbose,
        dry_run=dry_run,
        interactive=interactive,
        keep_executables=keep_executables,
        permanent=permanent,
        yes=yes,
    )


def _resolve(config_path: Path | None, cli: PartialConfig) -> RunConfig:
    return merge(DEFAULT_CONFIG, read_config_file(config_path), cli)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info and scan errors, -vv debug)")
@click.pass_context
def main(ctx: click.Context, verbose: int) -> None:
    """devsweep: find and clean build artifacts of development projects."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@_scan_options
@click.pass_context
@_handle_errors
def scan(ctx: click.Context, directory: Path | None, as_json: bool, config_path: Path | None, **options: Any) -> None:
    """Report reclaimable build artifacts (preview only, never deletes)."""
    cli = _cli_layer(directory=directory, as_json=as_json, verbose=ctx.obj["verbose"] > 0, dry_run=True, **options)
    _run(_resolve(config_path, cli))


# ── clean ────────────────────────────────────────────────────────────────

@main.command()
@_scan_options
@click.option("--dry-run", is_flag=True, help="Show what would be cleaned without doing it")
@click.option("--interactive", "-i", is_flag=True, help="Pick projects from a numbered list")
@click.option("--keep-executables", "-k", is_flag=True, help="Copy compiled executables to <project>/bin first")
@click.option("--permanent", is_flag=True, help="Delete permanently instead of moving to the trash")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
@_handle_errors
def clean(ctx: click.Context, directory: Path | None, as_json: bool, config_path: Path | None, **options: Any) -> None:
    """Scan and clean build artifacts."""
    cli = _cli_layer(directory=directory, as_json=as_json, verbose=ctx.obj["verbose"] > 0, **options)
    config = _resolve(config_path, cli)
    if config.json and config.interactive:
        raise click.UsageError("--json and --interactive cannot be used together")
    _run(config)


def _run(config: RunConfig) -> None:
    engine = SweepEngine(config)

    if not config.json:
        click.echo(f"\n{click.style('🔍', bold=True)} Scanning {config.target}...\n")
    on_project = _echo_found if config.verbose and not config.json else None
    started = time.monotonic()
    scan_result = engine.scan(on_project=on_project)
    if not config.json:
        _print_scan_errors(scan_result.errors, config.verbose)
        click.echo(
            f"Found {len(scan_result.projects)} projects in "
            f"{format_elapsed(time.monotonic() - started)}\n"
        )

    projects = engine.plan()
    if not projects:
        if config.json:
            click.echo(json.dumps(build_report([]), indent=2))
        else:
            click.echo("Nothing to clean.")
        return

    if not config.json:
        _print_projects(projects)

    if config.dry_run:
        if config.json:
            click.echo(json.dumps(build_report(projects), indent=2))
        else:
            total = sum(p.artifacts.size for p in projects)
            click.echo(f"(dry run, nothing was deleted) Would free {click.style(format_size(total), fg='green', bold=True)}")
        return

    if config.interactive:
        projects = _interactive_select(projects)
        if not projects:
            click.echo("Nothing selected.")
            return
        if not config.keep_executables and click.confirm("Keep compiled executables before cleaning?", default=False):
            engine.reconfigure(keep_executables=True)

    if not config.yes and not config.json:
        total = sum(p.artifacts.size for p in projects)
        action = "Permanently delete" if config.permanent else "Move to trash"
        if not click.confirm(f"{action} artifacts of {len(projects)} projects ({format_size(total)})?", default=False):
            click.echo("Aborted.")
            return

    if not config.json:
        click.echo(f"\n{click.style('🧹', bold=True)} Cleaning...\n")

    report = engine.clean(projects)
    if report is None:
        return

    if config.json:
        click.echo(json.dumps(build_report(projects, report), indent=2))
    else:
        _print_cleanup(report)


def _echo_found(project: Project) -> None:
    click.echo(click.style(f"  found {project}", fg="bright_black"))


def _print_scan_errors(errors: list[ScanError], verbose: bool) -> None:
    if not errors:
        return
    if not verbose:
        click.echo(click.style(f"  {len(errors)} paths could not be read (use -v to list them)", fg="bright_black"))
        return
    for error in errors:
        click.echo(click.style(f"  {error.message}", fg="red"), err=True)


def _print_projects(projects: list[Project]) -> None:
    for project in projects:
        size = click.style(format_size(project.artifacts.size), fg="green", bold=True)
        click.echo(f"  {project.kind.icon} {project.name:35s} {size:>12s}  {project.root}")
    total = sum(p.artifacts.size for p in projects)
    click.echo(f"\nTotal reclaimable: {click.style(format_size(total), fg='green', bold=True)}\n")


def _interactive_select(projects: list[Project]) -> list[Project]:
    """Let the user pick which projects to clean."""
    click.echo("\nSelect projects to clean (enter numbers, comma-separated):\n")
    for i, project in enumerate(projects, 1):
        click.echo(f"  [{i}] {project.name:35s} {format_size(project.artifacts.size):>10s}  {project.root}")
    click.echo()
    raw = click.prompt("Selection", default="", show_default=False)
    if not raw.strip():
        return []
    selected: set[int] = set()
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit():
            idx = int(part) - 1
            if 0 <= idx < len(projects):
                selected.add(idx)
    return [p for i, p in enumerate(projects) if i in selected]


def _print_cleanup(report: CleanupReport) -> None:
    for warning in report.warnings:
        click.echo(f"  {click.style('!', fg='yellow')} {warning}")
    if report.preserved:
        click.echo(f"  Preserved {len(report.preserved)} executable(s)")
    for project in report.success:
        click.echo(f"  {click.style('✓', fg='green')} {project.name:35s} freed {format_size(project.artifacts.size)}")
    for message in report.errors:
        click.echo(f"  {click.style('✗', fg='red')} {message}", err=True)

    click.echo(f"\nCleaned {len(report.success)} projects", nl=False)
    if report.failures:
        click.echo(f", {click.style(str(len(report.failures)), fg='red')} failed", nl=False)
    click.echo(f"\nTotal freed: {click.style(format_size(report.bytes_freed), fg='green', bold=True)}\n")


# ── config ───────────────────────────────────────────────────────────────

@main.group("config")
def config_group() -> None:
    """Inspect or create the configuration file."""


@config_group.command("path")
def config_path_cmd() -> None:
    """Print the config file location."""
    click.echo(str(default_config_path()))


@config_group.command("show")
@_handle_errors
def config_show() -> None:
    """Show the config file values, marking defaults."""
    path = default_config_path()
    file_config = read_config_file(path)
    status = "found" if file_config is not None else "not found, showing defaults"
    click.echo(f"Config file: {path} ({status})\n")
    click.echo(format_config(file_config))


@config_group.command("init")
def config_init() -> None:
    """Write a commented config template."""
    path = default_config_path()
    if not write_config_template(path):
        click.echo(f"Config file already exists at: {path}")
        click.echo("Remove it first if you want to regenerate it.")
        return
    click.echo(f"Config file written to: {path}")
