"""Preserve pre-existing destinations before they are replaced by links."""

import shutil
from pathlib import Path
from typing import Dict, List, Optional

import typer

from .context import SyncContext
from .exceptions import DotsyncIOError
from .linker import is_identical_file, is_link_correct
from .models import BackupRecord, Category, ManagedFile
from .resolver import resolve_managed_files


def get_run_backup_dir(ctx: SyncContext) -> Path:
    """
    Return the backup folder of the current run.

    Folders are never reused across runs: a run starting in the same second
    as an earlier one gets a numeric suffix.
    """
    if ctx.backup_run_dir is None:
        candidate = ctx.backup_root / ctx.timestamp
        counter = 1
        while candidate.exists():
            candidate = ctx.backup_root / f"{ctx.timestamp}_{counter}"
            counter += 1
        ctx.backup_run_dir = candidate
    return ctx.backup_run_dir


def needs_backup(managed: ManagedFile) -> bool:
    """Return True if something other than the desired link occupies the target."""
    target = managed.target_path
    try:
        if not target.exists() and not target.is_symlink():
            return False
        if is_link_correct(target, managed.source_path):
            return False
        return not is_identical_file(target, managed.source_path)
    except OSError as e:
        raise DotsyncIOError(f"Cannot read {target}: {e}")


def backup_existing(ctx: SyncContext, managed: ManagedFile) -> Optional[BackupRecord]:
    """
    Move whatever occupies ``managed.target_path`` into the run's backup folder.

    Returns None when there is nothing to preserve: the destination is empty,
    already links to the source, or holds identical bytes.
    """
    if not needs_backup(managed):
        return None

    run_dir = get_run_backup_dir(ctx)
    backup_path = run_dir / managed.category.value / Path(managed.relative_path)
    if backup_path.exists() or backup_path.is_symlink():
        raise DotsyncIOError(f"Backup destination {backup_path} already exists")

    try:
        backup_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(managed.target_path), str(backup_path))
    except OSError as e:
        raise DotsyncIOError(f"Cannot back up {managed.target_path}: {e}")

    ctx.echo(
        f"Backed up {managed.target_path} to "
        f"{backup_path.relative_to(ctx.local_root).as_posix()}",
        fg=typer.colors.BLUE,
    )
    return BackupRecord(
        managed=managed,
        original_path=managed.target_path,
        backup_path=backup_path,
        timestamp=run_dir.name,
    )


def list_backups(ctx: SyncContext) -> Dict[str, List[Path]]:
    """List backup runs, newest first, with the files each one holds."""
    if not ctx.backup_root.exists():
        return {}

    runs = sorted(
        (d for d in ctx.backup_root.iterdir() if d.is_dir()),
        key=lambda d: d.name,
        reverse=True,
    )
    return {
        run.name: sorted(
            p for p in run.rglob("*") if p.is_file() or p.is_symlink()
        )
        for run in runs
    }


def restore_backup(ctx: SyncContext, backup_file: Path) -> Path:
    """
    Copy a backed-up file back to the destination it was taken from.

    The destination is recomputed from the current manifest. A managed link
    at the destination is replaced; any other existing entry is refused. The
    backup itself is kept.
    """
    backup_file = Path(backup_file).absolute()
    try:
        relative = backup_file.relative_to(ctx.backup_root)
    except ValueError:
        raise DotsyncIOError(f"{backup_file} is not inside {ctx.backup_root}")
    if len(relative.parts) < 3 or relative.parts[1] not in {c.value for c in Category}:
        raise DotsyncIOError(f"Unrecognized backup path: {backup_file}")
    if not backup_file.exists() and not backup_file.is_symlink():
        raise DotsyncIOError(f"Backup file {backup_file} not found")

    source_key = Path(*relative.parts[1:]).as_posix()
    matches = [m for m in resolve_managed_files(ctx) if m.source_key == source_key]
    if matches:
        destination = matches[0].target_path
    else:
        category_relative = Path(*relative.parts[2:])
        destination = (
            ctx.manifest.resolve_target(source_key, ctx.home)
            or ctx.home / category_relative
        )

    if matches and is_link_correct(destination, matches[0].source_path):
        destination.unlink()
    elif destination.exists() or destination.is_symlink():
        raise DotsyncIOError(
            f"{destination} exists and is not a managed link; refusing to overwrite"
        )

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(backup_file, destination, follow_symlinks=False)
    except OSError as e:
        raise DotsyncIOError(f"Cannot restore {backup_file}: {e}")

    ctx.echo(f"✓ Restored {destination} from backup", fg=typer.colors.GREEN)
    return destination
