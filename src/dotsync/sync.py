"""Back up and link every managed file, collecting per-file failures."""

from typing import List, Optional

import typer
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from .backup import backup_existing
from .context import SyncContext, console
from .exceptions import DotsyncIOError, DotsyncLinkError
from .linker import install_link
from .models import FileResult, FileStatus, ManagedFile, RunSummary
from .resolver import resolve_managed_files

PROGRESS_THRESHOLD = 50  # Show progress bar for runs with 50+ files


def sync_file(ctx: SyncContext, managed: ManagedFile) -> FileResult:
    """Back up then link one file; per-file errors become a failed result."""
    try:
        backup = backup_existing(ctx, managed)
    except DotsyncIOError as e:
        ctx.echo(f"  ! {managed.source_key}: {e}", fg=typer.colors.RED, err=True)
        return FileResult(managed=managed, status=FileStatus.FAILED, error=e)

    try:
        changed = install_link(ctx, managed)
    except DotsyncLinkError as e:
        ctx.echo(f"  ! {managed.source_key}: {e}", fg=typer.colors.RED, err=True)
        return FileResult(
            managed=managed, status=FileStatus.FAILED, backup=backup, error=e
        )

    status = FileStatus.SYNCED if changed else FileStatus.SKIPPED
    return FileResult(managed=managed, status=status, backup=backup)


def sync_files(ctx: SyncContext, files: List[ManagedFile]) -> RunSummary:
    """Sync ``files`` in order; a failing file never stops the rest of the batch."""
    summary = RunSummary()

    if ctx.quiet or len(files) < PROGRESS_THRESHOLD:
        for managed in files:
            summary.results.append(sync_file(ctx, managed))
        return summary

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Syncing dotfiles", total=len(files))
        for managed in files:
            progress.update(task, description=f"Syncing {managed.source_key}")
            summary.results.append(sync_file(ctx, managed))
            progress.advance(task)

    return summary


def run_sync(
    ctx: SyncContext, files: Optional[List[ManagedFile]] = None
) -> RunSummary:
    """
    Resolve the rendered tree and sync it.

    Manifest and structure errors propagate before any destination is touched.
    """
    if files is None:
        files = resolve_managed_files(ctx)
    ctx.echo(f"Syncing {len(files)} managed files...", fg=typer.colors.CYAN)
    return sync_files(ctx, files)
