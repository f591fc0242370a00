# === NAVMAP v1 ===
# {
#   "module": "OptCache.CacheRepair.cli",
#   "purpose": "Typer CLI for deriving, inspecting, checking and sweeping optimized-artifact caches",
#   "sections": [
#     {"id": "setup", "name": "Setup & Context", "anchor": "IMP", "kind": "infra"},
#     {"id": "commands", "name": "CLI Commands", "anchor": "CMDS", "kind": "commands"}
#   ]
# }
# === /NAVMAP ===

"""Typer CLI for optimized-artifact cache repair.

Example:
    $ optcache sweep /data/app/code_cache/secondary-dexes --dry-run
    $ optcache inspect /data/app/code_cache/secondary-dexes/app.apk.classes2.dex
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .diagnostics import capture_signature
from .errors import ConfigurationError
from .logging_utils import setup_logging
from .paths import derive_path
from .settings import CacheRepairSettings, load_settings
from .sweeper import CacheSweeper
from .validator import CacheValidator

# ============================================================================
# SETUP (IMP)
# ============================================================================

app = typer.Typer(
    name="optcache",
    help="Optimized-artifact cache repair - detect and remove corrupt cached artifacts",
    no_args_is_help=True,
)

_console = Console()


class CliContext:
    """Shared state for one CLI invocation."""

    def __init__(self, verbosity: int = 0) -> None:
        self.verbosity = verbosity
        self.console = _console

    def settings(self, **overrides) -> CacheRepairSettings:
        try:
            return load_settings(**overrides)
        except ConfigurationError as exc:
            self.console.print(f"[red]Error loading settings: {exc}[/red]")
            raise typer.Exit(2) from exc


_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """Return the current CLI context, creating a default one if needed."""

    global _context
    if _context is None:
        _context = CliContext()
    return _context


def _emit(data: dict, fmt: str, title: str) -> None:
    console = get_context().console
    if fmt == "json":
        typer.echo(json.dumps(data, indent=2, default=str))
        return
    table = Table(title=title)
    table.add_column("Field")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, (list, dict)):
            value = json.dumps(value, default=str)
        table.add_row(str(key), str(value))
    console.print(table)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"optcache {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    verbosity: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity (-v for INFO, -vv for DEBUG)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Detect and remove corrupt optimized artifacts from a local cache."""

    global _context

    _context = CliContext(verbosity=verbosity)
    settings = _context.settings()
    level = settings.logging.level
    if verbosity == 1:
        level = "INFO"
    elif verbosity >= 2:
        level = "DEBUG"
    setup_logging(
        level,
        json_logs=settings.logging.json_logs,
        log_dir=settings.logging.log_dir,
        max_log_size_mb=settings.logging.max_log_size_mb,
        backup_count=settings.logging.backup_count,
    )


# ============================================================================
# CLI COMMANDS (CMDS)
# ============================================================================


@app.command()
def derive(
    archive: Path = typer.Argument(..., help="Source archive path"),
    cache_dir: Path = typer.Option(..., "--cache-dir", "-d", help="Cache directory"),
    suffix: Optional[str] = typer.Option(None, "--suffix", help="Optimized-artifact suffix"),
) -> None:
    """Print the optimized-artifact path derived for ARCHIVE."""

    settings = get_context().settings(optimized_suffix=suffix)
    typer.echo(str(derive_path(archive, cache_dir, settings.optimized_suffix)))


@app.command()
def inspect(
    artifact: Path = typer.Argument(..., help="Optimized artifact to fingerprint"),
    algorithm: Optional[str] = typer.Option(None, "--algorithm", help="Digest algorithm"),
    fmt: str = typer.Option("table", "--format", "-f", help="Output format: 'json' or 'table'"),
) -> None:
    """Print the header hex and content digest of ARTIFACT."""

    settings = get_context().settings(digest_algorithm=algorithm)
    signature = capture_signature(
        artifact, algorithm=settings.digest_algorithm, header_size=settings.header_size
    )
    data = {"path": str(artifact), **signature.to_mapping()}
    _emit(data, fmt, "Artifact signature")
    if not signature.header.ok:
        raise typer.Exit(1)


@app.command()
def check(
    archive: Path = typer.Argument(..., help="Source archive whose artifact to validate"),
    cache_dir: Path = typer.Option(..., "--cache-dir", "-d", help="Cache directory"),
    loader: Optional[str] = typer.Option(None, "--loader", help="Loader name or module:attr"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Report without deleting"),
    fmt: str = typer.Option("table", "--format", "-f", help="Output format: 'json' or 'table'"),
) -> None:
    """Validate one cached artifact, deleting it if corrupt. Exit 1 when invalid."""

    ctx = get_context()
    settings = ctx.settings(loader=loader, dry_run=dry_run or None)
    try:
        validator = CacheValidator.from_settings(settings)
    except ConfigurationError as exc:
        ctx.console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(2) from exc
    outcome = validator.check(archive, cache_dir)
    _emit(outcome.to_mapping(), fmt, "Artifact check")
    if not outcome.valid:
        raise typer.Exit(1)


@app.command()
def sweep(
    cache_dir: Optional[Path] = typer.Argument(
        None, help="Cache directory (defaults to OPTCACHE_CACHE_DIR)"
    ),
    suffixes: Optional[List[str]] = typer.Option(
        None, "--suffix", "-s", help="Archive suffix to sweep (repeatable)"
    ),
    loader: Optional[str] = typer.Option(None, "--loader", help="Loader name or module:attr"),
    purge_archives: bool = typer.Option(
        False, "--purge-archives", help="Also delete archives whose artifact is invalid"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Report without deleting"),
    fmt: str = typer.Option("table", "--format", "-f", help="Output format: 'json' or 'table'"),
) -> None:
    """Validate every archive in CACHE_DIR and remove corrupt artifacts."""

    ctx = get_context()
    settings = ctx.settings(
        cache_dir=cache_dir,
        archive_suffixes=list(suffixes) if suffixes else None,
        loader=loader,
        purge_archives=purge_archives or None,
        dry_run=dry_run or None,
    )
    if settings.cache_dir is None:
        ctx.console.print("[red]✗ No cache directory given (argument or OPTCACHE_CACHE_DIR)[/red]")
        raise typer.Exit(2)
    try:
        sweeper = CacheSweeper.from_settings(settings)
    except ConfigurationError as exc:
        ctx.console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(2) from exc

    report = sweeper.sweep(settings.cache_dir)
    data = report.to_mapping()
    if fmt != "json":
        data.pop("entries")
    if settings.dry_run and fmt != "json":
        ctx.console.print("[yellow]DRY-RUN MODE: No changes were made[/yellow]")
    _emit(data, fmt, "Cache sweep")


@app.command("version")
def version_cmd() -> None:
    """Show version information."""

    typer.echo(f"optcache {__version__}")
