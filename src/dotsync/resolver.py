"""Resolve the rendered template tree into the set of managed files."""

import fnmatch
from pathlib import Path, PurePosixPath
from typing import Dict, List

from .context import SyncContext
from .exceptions import DotsyncStructureError
from .models import Category, ManagedFile, Platform


def matches_patterns(filename: str, patterns: List[str]) -> bool:
    """Check if a filename matches any of the given glob patterns."""
    return any(fnmatch.fnmatch(filename, pattern) for pattern in patterns)


def check_structure(local_root: Path) -> None:
    """Validate the category folders of a rendered tree."""
    if not (local_root / Category.COMMON.value).is_dir():
        raise DotsyncStructureError(
            f"Rendered tree {local_root} has no '{Category.COMMON.value}/' folder"
        )
    platform_dirs = [p for p in Platform if (local_root / p.value).is_dir()]
    if len(platform_dirs) > 1:
        raise DotsyncStructureError(
            f"Rendered tree {local_root} contains both 'unix/' and 'windows/'; "
            "cannot select a platform"
        )


def walk_category(root: Path, ignore_patterns: List[str]) -> List[PurePosixPath]:
    """Return file paths under ``root`` relative to it, skipping symlinks."""
    if not root.is_dir():
        return []

    found = []
    for item in root.rglob("*"):
        if item.is_symlink() or not item.is_file():
            continue
        relative = item.relative_to(root)
        if any(matches_patterns(part, ignore_patterns) for part in relative.parts):
            continue
        found.append(PurePosixPath(relative.as_posix()))
    return found


def resolve_managed_files(ctx: SyncContext) -> List[ManagedFile]:
    """
    Produce the managed files of the rendered tree with their destinations.

    ``common/`` and the host platform folder are walked; each file's
    category-qualified path is looked up in the manifest and otherwise lands
    at ``$HOME/<relative_path>``. The result is sorted by relative path.
    """
    check_structure(ctx.local_root)

    ignore_patterns = ctx.config.get("ignore_patterns", [])
    managed: List[ManagedFile] = []
    for category in (Category.COMMON, ctx.platform.category):
        category_root = ctx.local_root / category.value
        for relative_path in walk_category(category_root, ignore_patterns):
            source_key = f"{category.value}/{relative_path.as_posix()}"
            target = ctx.manifest.resolve_target(source_key, ctx.home)
            if target is None:
                target = ctx.home / relative_path
            managed.append(
                ManagedFile(
                    category=category,
                    relative_path=relative_path,
                    source_path=category_root / relative_path,
                    target_path=target,
                )
            )

    managed.sort(key=lambda m: (m.relative_path.as_posix(), m.category.value))

    seen: Dict[Path, ManagedFile] = {}
    for item in managed:
        previous = seen.get(item.target_path)
        if previous is not None:
            raise DotsyncStructureError(
                f"'{previous.source_key}' and '{item.source_key}' both resolve "
                f"to {item.target_path}"
            )
        seen[item.target_path] = item

    return managed
