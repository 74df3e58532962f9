"""CLI commands for dotsync - a template-driven dotfiles synchronizer."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.table import Table
from typing_extensions import Annotated

from .backup import list_backups, restore_backup
from .config import get_config_value, load_config, reset_config, set_config_value
from .context import SyncContext, console
from .coordinator import init_local, resync_local, update_local
from .exceptions import DotsyncError
from .linker import check_links
from .models import CoordinatorResult, CoordinatorState, FileStatus
from .resolver import resolve_managed_files

# Constants
DEFAULT_VERSION = "0.1.0"
MAX_DISPLAYED_BACKUPS = 5

# Global app instance
app = typer.Typer(help="dotsync - a template-driven dotfiles synchronizer")

LocalPath = Annotated[
    Path, typer.Argument(help="Local directory holding the rendered template.")
]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress output")]
TrustOption = Annotated[
    bool,
    typer.Option("--trust", help="Allow running setup tasks shipped with the template."),
]
RefOption = Annotated[
    Optional[str], typer.Option("--ref", help="Template branch, tag or commit.")
]
DataOption = Annotated[
    Optional[List[str]],
    typer.Option("--data", "-d", help="Template variable as KEY=VALUE (repeatable)."),
]


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def parse_data(values: Optional[List[str]]) -> Dict[str, Any]:
    """Parse repeated KEY=VALUE options; values that are valid JSON are decoded."""
    data: Dict[str, Any] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{item}'")
        try:
            data[key.strip()] = json.loads(value)
        except json.JSONDecodeError:
            data[key.strip()] = value
    return data


def print_summary(result: CoordinatorResult) -> None:
    """Print synced, skipped and failed files of a run."""
    summary = result.summary
    for item in summary.results:
        target = item.managed.target_path
        if item.status == FileStatus.SYNCED:
            line = f"  ✓ {item.managed.source_key} -> {target}"
            if item.backup is not None:
                line += f" (backup: {item.backup.backup_path.name})"
            typer.secho(line, fg=typer.colors.GREEN)
        elif item.status == FileStatus.SKIPPED:
            typer.secho(
                f"  = {item.managed.source_key} already linked", fg=typer.colors.WHITE
            )
        else:
            typer.secho(
                f"  ! {item.managed.source_key}: failed "
                f"({type(item.error).__name__}: {item.error})",
                fg=typer.colors.RED,
                err=True,
            )

    typer.secho(
        f"{len(summary.synced)} synced, {len(summary.skipped)} skipped, "
        f"{len(summary.failed)} failed",
        fg=typer.colors.GREEN if summary.ok else typer.colors.YELLOW,
        bold=True,
    )


def finish(result: CoordinatorResult, quiet: bool) -> None:
    """Report a run and exit non-zero if it aborted or any file failed."""
    if result.state == CoordinatorState.ABORTED:
        typer.secho(f"Error: {result.error}", fg=typer.colors.RED, err=True)
        for conflict in result.conflicts:
            typer.secho(
                f"  conflict: {conflict.path} ({conflict.reason})",
                fg=typer.colors.RED,
                err=True,
            )
        raise typer.Exit(code=1)

    if not quiet:
        print_summary(result)
    if not result.summary.ok:
        typer.secho(
            "Some files failed; fix the errors above and run 'dotsync sync' again.",
            fg=typer.colors.YELLOW,
            err=True,
        )
        raise typer.Exit(code=1)


def load_context(local_path: Path, quiet: bool = False) -> SyncContext:
    try:
        return SyncContext.create(local_path, quiet=quiet)
    except DotsyncError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


# ============================================================================
# SYNC COMMANDS
# ============================================================================


@app.command()
def init(
    src: Annotated[str, typer.Argument(help="Template repository (URL or path).")],
    local_path: LocalPath,
    ref: RefOption = None,
    data: DataOption = None,
    trust: TrustOption = False,
    quiet: QuietOption = False,
) -> None:
    """Render a template into LOCAL_PATH, back up existing files and link them."""
    result = init_local(
        src, local_path, ref=ref, data=parse_data(data), trust=trust, quiet=quiet
    )
    finish(result, quiet)


@app.command()
def update(
    local_path: LocalPath,
    ref: RefOption = None,
    data: DataOption = None,
    trust: TrustOption = False,
    quiet: QuietOption = False,
) -> None:
    """
    Merge upstream template changes into LOCAL_PATH and re-sync.

    The local tree must be clean. Conflicting changes are left inline for
    manual resolution and nothing is synced.
    """
    result = update_local(
        local_path, ref=ref, data=parse_data(data), trust=trust, quiet=quiet
    )
    finish(result, quiet)


@app.command()
def sync(local_path: LocalPath, quiet: QuietOption = False) -> None:
    """Re-run backup and linking without touching the template."""
    finish(resync_local(local_path, quiet=quiet), quiet)


@app.command()
def status(local_path: LocalPath) -> None:
    """Check that every managed file is linked into LOCAL_PATH."""
    ctx = load_context(local_path)
    try:
        files = resolve_managed_files(ctx)
    except DotsyncError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    results = check_links(ctx, files)
    targets = {m.source_key: m.target_path for m in files}

    table = Table(title=f"dotsync status ({ctx.platform.value})")
    table.add_column("File")
    table.add_column("Target")
    table.add_column("State")
    styles = {
        "valid": "green",
        "missing": "yellow",
        "wrong_target": "red",
        "not_symlink": "red",
        "broken": "red",
    }
    for state, keys in results.items():
        for key in keys:
            table.add_row(key, str(targets[key]), f"[{styles[state]}]{state}[/]")
    console.print(table)

    problems = len(files) - len(results["valid"])
    if problems:
        typer.secho(
            f"{problems} file(s) need attention; run 'dotsync sync'",
            fg=typer.colors.YELLOW,
        )
        raise typer.Exit(code=1)
    typer.secho("All managed files are linked", fg=typer.colors.GREEN)


# ============================================================================
# BACKUP MANAGEMENT COMMANDS
# ============================================================================

backup_app = typer.Typer(help="Inspect and restore dotsync backups")
app.add_typer(backup_app, name="backup")


@backup_app.command("list")
def backup_list(
    local_path: LocalPath,
    all_runs: Annotated[
        bool, typer.Option("--all", "-a", help="Show every backup run")
    ] = False,
) -> None:
    """List backup runs, newest first."""
    ctx = load_context(local_path)
    runs = list_backups(ctx)
    if not runs:
        typer.secho("No backups found", fg=typer.colors.YELLOW)
        return

    shown = list(runs.items())
    if not all_runs:
        shown = shown[:MAX_DISPLAYED_BACKUPS]
    for run, files in shown:
        typer.secho(f"{run} ({len(files)} files)", fg=typer.colors.CYAN, bold=True)
        for path in files:
            typer.echo(f"  {path.relative_to(ctx.local_root).as_posix()}")
    if len(shown) < len(runs):
        typer.secho(
            f"... and {len(runs) - len(shown)} older runs (use --all)",
            fg=typer.colors.WHITE,
        )


@backup_app.command("restore")
def backup_restore(
    local_path: LocalPath,
    backup_file: Annotated[Path, typer.Argument(help="File inside the backups folder.")],
) -> None:
    """Copy a backed-up file back to its original destination."""
    ctx = load_context(local_path)
    if not backup_file.is_absolute():
        backup_file = ctx.local_root / backup_file
    try:
        restore_backup(ctx, backup_file)
    except DotsyncError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


# ============================================================================
# CONFIGURATION COMMANDS
# ============================================================================

config_app = typer.Typer(help="Manage dotsync configuration")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(
    key: Annotated[
        str,
        typer.Argument(
            help="Configuration key to show (e.g., 'commit.author_name' "
            "or leave empty for all)"
        ),
    ] = "",
) -> None:
    """Show current configuration or a specific configuration value."""
    if not key:
        typer.echo(json.dumps(load_config(), indent=2))
        return

    value = get_config_value(key, quiet=True)
    if value is None:
        typer.secho(
            f"Configuration key '{key}' not found.", fg=typer.colors.RED, err=True
        )
        raise typer.Exit(code=1)
    if isinstance(value, (list, dict)):
        typer.echo(json.dumps(value, indent=2))
    else:
        typer.echo(str(value))


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key to set")],
    value: Annotated[
        str, typer.Argument(help="Value to set (JSON strings for lists/objects)")
    ],
) -> None:
    """Set a configuration value."""
    if not set_config_value(key, value):
        raise typer.Exit(code=1)


@config_app.command("reset")
def config_reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Reset configuration to defaults."""
    if not yes and not typer.confirm("Reset configuration to defaults?"):
        raise typer.Exit()
    reset_config()


# ============================================================================
# UTILITY COMMANDS
# ============================================================================


@app.command()
def version() -> None:
    """Show dotsync version."""
    try:
        from importlib.metadata import version as get_version

        version_str = get_version("dotsync")
    except Exception:
        version_str = DEFAULT_VERSION

    typer.secho(f"dotsync version {version_str}", fg=typer.colors.GREEN)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
