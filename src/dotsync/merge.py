"""Three-way merge of a template update into a customized local tree."""

import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from git import Git

from .exceptions import DotsyncRenderError
from .models import Applied, Conflicted, MergeAction, MergeResult
from .template import RenderedTree

CONFLICT_LABELS = ("local", "previous template", "new template")


def read_local(path: Path) -> Optional[bytes]:
    if path.is_file():
        return path.read_bytes()
    return None


def is_binary(*contents: Optional[bytes]) -> bool:
    return any(c is not None and b"\0" in c for c in contents)


def merge_file(ours: bytes, base: bytes, theirs: bytes) -> Tuple[int, bytes]:
    """
    Merge ``theirs`` into ``ours`` relative to ``base`` with ``git merge-file``.

    Returns the number of conflicting hunks and the merged bytes, which carry
    inline conflict markers when that number is positive.
    """
    with tempfile.TemporaryDirectory(prefix="dotsync-merge-") as tmp:
        paths = []
        for name, content in (("ours", ours), ("base", base), ("theirs", theirs)):
            path = Path(tmp) / name
            path.write_bytes(content)
            paths.append(str(path))

        labels = []
        for label in CONFLICT_LABELS:
            labels.extend(["-L", label])
        status, _stdout, stderr = Git(tmp).merge_file(
            *labels,
            *paths,
            with_extended_output=True,
            with_exceptions=False,
        )
        if status < 0 or status > 127:
            raise ValueError(stderr or f"git merge-file exited with {status}")
        return status, Path(paths[0]).read_bytes()


def merge_path(
    local_root: Path, name: str, base: Optional[bytes], new: Optional[bytes]
) -> Optional[MergeResult]:
    """Apply one template change; returns None when nothing had to happen."""
    if base == new:
        return None

    path = local_root / name
    if (path.exists() or path.is_symlink()) and not path.is_file():
        return Conflicted(name, "not a regular file locally")

    ours = read_local(path)
    if ours == new:
        return None

    if ours == base:
        if new is None:
            path.unlink()
            return Applied(name, MergeAction.DELETED)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(new)
        action = MergeAction.CREATED if ours is None else MergeAction.UPDATED
        return Applied(name, action)

    if base is None:
        return Conflicted(name, "added locally and in the template")
    if new is None:
        return Conflicted(name, "modified locally, deleted in the template")
    if ours is None:
        return Conflicted(name, "deleted locally, modified in the template")
    if is_binary(ours, base, new):
        return Conflicted(name, "binary file changed locally and in the template")

    try:
        conflicts, merged = merge_file(ours, base, new)
    except ValueError as e:
        return Conflicted(name, f"merge failed: {e}")

    path.write_bytes(merged)
    if conflicts:
        return Conflicted(name, "conflicting hunks", conflicts)
    return Applied(name, MergeAction.MERGED)


def merge_trees(
    local_root: Path, base: RenderedTree, new: RenderedTree
) -> List[MergeResult]:
    """
    Apply the difference between two template renders to the local tree.

    Non-conflicting changes are written; conflicts are reported and, for
    textual merges, left inline with conflict markers for manual resolution.
    """
    results: List[MergeResult] = []
    for name in sorted(set(base) | set(new)):
        try:
            result = merge_path(local_root, name, base.get(name), new.get(name))
        except OSError as e:
            raise DotsyncRenderError(f"Cannot apply template change to {name}: {e}")
        if result is not None:
            results.append(result)
    return results
