"""
End-to-end init, update and sync runs.

Every run moves through ``clean -> rendering -> syncing -> committing`` and
ends ``completed`` or ``aborted``. Manifest, structure, lock, Git and render
problems abort the run; per-file backup and link failures are reported in
the run summary and do not.
"""

from contextlib import nullcontext
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import typer
from rich.status import Status

from .config import load_config
from .context import SyncContext, console
from .exceptions import (
    DotsyncConflictError,
    DotsyncDirtyTreeError,
    DotsyncError,
    DotsyncIOError,
    DotsyncRepositoryError,
)
from .lock import acquire_lock
from .merge import merge_trees
from .models import Conflicted, CoordinatorResult, CoordinatorState, Platform
from .sync import run_sync
from .tasks import run_tasks, select_tasks
from .template import (
    TemplateSource,
    load_answers,
    merge_data,
    render_tree,
    save_answers,
    template_variables,
    write_tree,
)
from .vcs import commit_all, dirty_paths, init_repository, open_repository

Clock = Callable[[], datetime]


def _render(source: TemplateSource, ctx: SyncContext, user_data: Dict[str, Any]):
    defaults = template_variables(source.path, ctx.config["manifest_filename"])
    return render_tree(
        source.path, ctx.platform, merge_data(defaults, user_data), ctx.config
    )


def _run_setup_tasks(ctx: SyncContext, phase: str, trust: bool) -> None:
    tasks = select_tasks(ctx.manifest, ctx.platform, phase)
    if not tasks:
        return
    if not trust:
        ctx.echo(
            f"Skipping {len(tasks)} template task(s); pass --trust to run them",
            fg=typer.colors.YELLOW,
        )
        return
    run_tasks(ctx, tasks)


def _sync_and_commit(
    ctx: SyncContext, repo: Any, result: CoordinatorResult, message: str
) -> None:
    result.state = CoordinatorState.SYNCING
    result.summary = run_sync(ctx)

    result.state = CoordinatorState.COMMITTING
    result.commit = commit_all(repo, message)
    if result.commit:
        ctx.echo(f"Committed changes: {result.commit[:8]}", fg=typer.colors.GREEN)
    result.state = CoordinatorState.COMPLETED


def _abort(result: CoordinatorResult, error: Exception) -> CoordinatorResult:
    result.state = CoordinatorState.ABORTED
    result.error = error
    return result


def init_local(
    src: str,
    local_root: Path,
    ref: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    trust: bool = False,
    home: Optional[Path] = None,
    platform: Optional[Platform] = None,
    clock: Clock = datetime.now,
    quiet: bool = False,
) -> CoordinatorResult:
    """Render ``src`` into a new ``local_root``, run setup, sync and commit."""
    result = CoordinatorResult(state=CoordinatorState.CLEAN)
    local_root = Path(local_root).expanduser().absolute()
    if local_root.exists() and any(local_root.iterdir()):
        return _abort(
            result,
            DotsyncRepositoryError(f"{local_root} already exists and is not empty"),
        )

    try:
        config = load_config(home)
        ctx = SyncContext.create(
            local_root, home=home, platform=platform, config=config,
            clock=clock, quiet=quiet,
        )

        # Nothing is created under local_root until the template has rendered
        result.state = CoordinatorState.RENDERING
        ctx.echo(f"Rendering template {src}...", fg=typer.colors.BLUE)
        with (
            Status("Fetching template...", console=console)
            if not quiet
            else nullcontext()
        ):
            source = TemplateSource.clone(src, ref)
        with source:
            tree = _render(source, ctx, data or {})
            commit = source.commit

        try:
            local_root.mkdir(parents=True, exist_ok=True)
            (local_root / ".gitignore").write_text(f"{config['lock_filename']}\n")
        except OSError as e:
            raise DotsyncIOError(f"Cannot create {local_root}: {e}")
        with acquire_lock(ctx.lock_path):
            repo = init_repository(local_root, config)
            write_tree(local_root, tree)
            save_answers(
                ctx.answers_path,
                {"src": src, "commit": commit, "data": dict(data or {})},
            )
            ctx.reload_manifest()

            _run_setup_tasks(ctx, "init", trust)
            _sync_and_commit(ctx, repo, result, f"Render template at {commit[:8]}")
    except DotsyncError as e:
        return _abort(result, e)
    return result


def update_local(
    local_root: Path,
    ref: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    trust: bool = False,
    home: Optional[Path] = None,
    platform: Optional[Platform] = None,
    clock: Clock = datetime.now,
    quiet: bool = False,
) -> CoordinatorResult:
    """
    Apply the template's changes since the last render, then re-sync.

    Requires a clean tree. Conflicting changes are written inline and the
    run aborts before syncing so they can be resolved and committed by hand.
    """
    result = CoordinatorResult(state=CoordinatorState.CLEAN)
    try:
        ctx = SyncContext.create(
            local_root, home=home, platform=platform, clock=clock, quiet=quiet
        )
        repo = open_repository(ctx.local_root)
        with acquire_lock(ctx.lock_path):
            dirty = dirty_paths(repo, ignored=[ctx.config["lock_filename"]])
            if dirty:
                raise DotsyncDirtyTreeError(
                    "Local tree has uncommitted changes: " + ", ".join(dirty)
                )

            answers = load_answers(ctx.answers_path)
            user_data = merge_data(answers["data"], data)

            result.state = CoordinatorState.RENDERING
            ctx.echo(f"Fetching template {answers['src']}...", fg=typer.colors.BLUE)
            with TemplateSource.clone(answers["src"]) as source:
                if ref:
                    source.checkout(ref)
                new_commit = source.commit
                new_tree = _render(source, ctx, user_data)
                source.checkout(answers["commit"])
                base_tree = _render(source, ctx, answers["data"])

            result.merges = merge_trees(ctx.local_root, base_tree, new_tree)
            save_answers(
                ctx.answers_path,
                {"src": answers["src"], "commit": new_commit, "data": user_data},
            )
            for merge in result.merges:
                if isinstance(merge, Conflicted):
                    ctx.echo(f"  ! {merge.path}: {merge.reason}", fg=typer.colors.RED, err=True)
                else:
                    ctx.echo(f"  {merge.action.value} {merge.path}", fg=typer.colors.GREEN)
            if result.conflicts:
                raise DotsyncConflictError(
                    f"{len(result.conflicts)} file(s) conflict with the template "
                    "update; resolve them, commit, then run 'dotsync sync'"
                )

            ctx.reload_manifest()
            _run_setup_tasks(ctx, "update", trust)
            _sync_and_commit(
                ctx, repo, result, f"Update template to {new_commit[:8]}"
            )
    except DotsyncError as e:
        return _abort(result, e)
    return result


def resync_local(
    local_root: Path,
    home: Optional[Path] = None,
    platform: Optional[Platform] = None,
    clock: Clock = datetime.now,
    quiet: bool = False,
) -> CoordinatorResult:
    """Re-run backup and linking for the current tree and commit the backups."""
    result = CoordinatorResult(state=CoordinatorState.CLEAN)
    try:
        ctx = SyncContext.create(
            local_root, home=home, platform=platform, clock=clock, quiet=quiet
        )
        repo = open_repository(ctx.local_root)
        with acquire_lock(ctx.lock_path):
            _sync_and_commit(ctx, repo, result, "Sync dotfiles")
    except DotsyncError as e:
        return _abort(result, e)
    return result

