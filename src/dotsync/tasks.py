"""Platform-conditional setup tasks shipped with a template."""

import subprocess
from typing import List

import typer

from .context import SyncContext
from .exceptions import DotsyncTaskError
from .manifest import Manifest
from .models import Platform, SetupTask


def select_tasks(manifest: Manifest, platform: Platform, phase: str) -> List[SetupTask]:
    """Tasks that apply to ``platform`` during ``phase`` ('init' or 'update')."""
    return [
        task
        for task in manifest.tasks
        if platform in task.platforms and task.when in (phase, "always")
    ]


def run_tasks(ctx: SyncContext, tasks: List[SetupTask]) -> None:
    """Run each task through the shell from the local root; stop at the first failure."""
    for task in tasks:
        ctx.echo(f"Running task: {task.command}", fg=typer.colors.BLUE)
        try:
            subprocess.run(  # nosec B602
                task.command,
                shell=True,
                cwd=str(ctx.local_root),
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise DotsyncTaskError(
                f"Task '{task.command}' failed with exit code {e.returncode}"
            )
        except OSError as e:
            raise DotsyncTaskError(f"Task '{task.command}' could not start: {e}")
