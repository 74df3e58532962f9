"""Local Git history of the rendered tree."""

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from .exceptions import (
    DotsyncGitError,
    DotsyncRepositoryNotFoundError,
)


def init_repository(local_root: Path, config: Dict[str, Any]) -> Repo:
    """Initialize a Git repository with the configured commit identity."""
    try:
        repo = Repo.init(str(local_root))
        repo.git.config("user.name", config["commit"]["author_name"])
        repo.git.config("user.email", config["commit"]["author_email"])
    except GitCommandError as e:
        raise DotsyncGitError(f"Cannot initialize repository at {local_root}: {e}")
    return repo


def open_repository(local_root: Path) -> Repo:
    """Open the local root as a Git repository."""
    try:
        return Repo(str(local_root))
    except (InvalidGitRepositoryError, NoSuchPathError):
        raise DotsyncRepositoryNotFoundError(
            f"{local_root} is not a dotsync repository. Run 'dotsync init' first."
        )


def has_commits(repo: Repo) -> bool:
    try:
        repo.head.commit
    except ValueError:
        return False
    return True


def dirty_paths(repo: Repo, ignored: Iterable[str] = ()) -> list:
    """List modified, staged and untracked paths, minus ``ignored`` names."""
    ignored = set(ignored)
    paths = set(repo.untracked_files)
    paths.update(item.a_path for item in repo.index.diff(None) if item.a_path)
    if has_commits(repo):
        paths.update(item.a_path for item in repo.index.diff("HEAD") if item.a_path)
    else:
        paths.update(path for path, _stage in repo.index.entries)
    return sorted(p for p in paths if p not in ignored)


def commit_all(repo: Repo, message: str) -> Optional[str]:
    """Stage everything and commit; returns the new sha, or None if unchanged."""
    try:
        repo.git.add("-A")
        if has_commits(repo) and not repo.index.diff("HEAD"):
            return None
        if not has_commits(repo) and not repo.index.entries:
            return None
        commit = repo.index.commit(message)
    except GitCommandError as e:
        raise DotsyncGitError(f"Failed to commit changes: {e}")
    return commit.hexsha
