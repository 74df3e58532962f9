"""Plant symbolic links from destinations into the rendered tree."""

import filecmp
import os
from pathlib import Path
from typing import Iterable

import typer

from .context import SyncContext
from .exceptions import DotsyncLinkError, LinkCheckDict
from .models import ManagedFile


def is_link_correct(target: Path, source: Path) -> bool:
    """Return True if ``target`` is a symlink resolving to ``source``."""
    if not target.is_symlink():
        return False
    try:
        return target.resolve() == source.resolve()
    except (OSError, RuntimeError):
        return False


def is_identical_file(target: Path, source: Path) -> bool:
    """Return True if ``target`` is a regular file with the same bytes as ``source``."""
    if target.is_symlink() or not target.is_file():
        return False
    return filecmp.cmp(target, source, shallow=False)


def install_link(ctx: SyncContext, managed: ManagedFile) -> bool:
    """
    Create the link at ``managed.target_path`` pointing at its source.

    Returns False when the correct link is already in place. Anything still
    occupying the destination must be a byte-identical copy of the source;
    other entries are left untouched and reported as a link error.
    """
    target = managed.target_path
    source = managed.source_path

    try:
        if is_link_correct(target, source):
            return False
    except OSError as e:
        raise DotsyncLinkError(f"Cannot inspect {target}: {e}")

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DotsyncLinkError(f"Cannot create directory {target.parent}: {e}")

    try:
        occupied = target.exists() or target.is_symlink()
        identical = occupied and is_identical_file(target, source)
    except OSError as e:
        raise DotsyncLinkError(f"Cannot inspect {target}: {e}")
    if occupied:
        if not identical:
            raise DotsyncLinkError(
                f"{target} is occupied by an entry that was not backed up"
            )
        try:
            target.unlink()
        except OSError as e:
            raise DotsyncLinkError(f"Cannot replace {target}: {e}")

    try:
        os.symlink(source.absolute(), target)
    except (OSError, NotImplementedError) as e:
        raise DotsyncLinkError(f"Cannot link {target} -> {source}: {e}")

    ctx.echo(f"Linked {target} -> {managed.source_key}", fg=typer.colors.GREEN)
    return True


def check_links(ctx: SyncContext, files: Iterable[ManagedFile]) -> LinkCheckDict:
    """Classify the destination of every managed file without changing anything."""
    results: LinkCheckDict = {
        "valid": [],
        "missing": [],
        "wrong_target": [],
        "not_symlink": [],
        "broken": [],
    }

    for managed in files:
        target = managed.target_path
        key = managed.source_key
        if is_link_correct(target, managed.source_path):
            if managed.source_path.exists():
                results["valid"].append(key)
            else:
                results["broken"].append(key)
        elif target.is_symlink():
            results["wrong_target"].append(key)
        elif target.exists():
            results["not_symlink"].append(key)
        else:
            results["missing"].append(key)

    return results
