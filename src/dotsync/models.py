"""Shared models and enums for dotsync."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union


class Category(str, Enum):
    """Top-level folders of a rendered template tree."""

    COMMON = "common"
    UNIX = "unix"
    WINDOWS = "windows"


class Platform(str, Enum):
    """Host platforms; exactly one is active per machine."""

    UNIX = "unix"
    WINDOWS = "windows"

    @property
    def category(self) -> Category:
        return Category(self.value)


@dataclass(frozen=True)
class ManagedFile:
    """A dotfile placed on the host by dotsync."""

    category: Category
    relative_path: PurePosixPath
    source_path: Path
    target_path: Path

    @property
    def source_key(self) -> str:
        """Category-qualified key used by the mapping manifest."""
        return f"{self.category.value}/{self.relative_path.as_posix()}"


@dataclass(frozen=True)
class PathMapping:
    source: str
    target: str


@dataclass(frozen=True)
class SetupTask:
    """A platform-conditional command shipped with the template."""

    command: str
    platforms: tuple = (Platform.UNIX, Platform.WINDOWS)
    when: str = "init"


@dataclass(frozen=True)
class BackupRecord:
    """A file moved aside before its destination was replaced by a link."""

    managed: ManagedFile
    original_path: Path
    backup_path: Path
    timestamp: str


class FileStatus(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FileResult:
    managed: ManagedFile
    status: FileStatus
    backup: Optional[BackupRecord] = None
    error: Optional[Exception] = None


@dataclass
class RunSummary:
    """Per-file outcomes of one sync run, in resolution order."""

    results: List[FileResult] = field(default_factory=list)

    def _with_status(self, status: FileStatus) -> List[FileResult]:
        return [r for r in self.results if r.status == status]

    @property
    def synced(self) -> List[FileResult]:
        return self._with_status(FileStatus.SYNCED)

    @property
    def skipped(self) -> List[FileResult]:
        return self._with_status(FileStatus.SKIPPED)

    @property
    def failed(self) -> List[FileResult]:
        return self._with_status(FileStatus.FAILED)

    @property
    def backups(self) -> List[BackupRecord]:
        return [r.backup for r in self.results if r.backup is not None]

    @property
    def ok(self) -> bool:
        return not self.failed


class MergeAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    MERGED = "merged"


@dataclass(frozen=True)
class Applied:
    """A template change that was applied to the local tree."""

    path: str
    action: MergeAction


@dataclass(frozen=True)
class Conflicted:
    """A template change left for manual resolution."""

    path: str
    reason: str
    conflicts: int = 1


MergeResult = Union[Applied, Conflicted]


class CoordinatorState(str, Enum):
    CLEAN = "clean"
    RENDERING = "rendering"
    SYNCING = "syncing"
    COMMITTING = "committing"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class CoordinatorResult:
    """Terminal state of an init, update or sync run."""

    state: CoordinatorState
    summary: RunSummary = field(default_factory=RunSummary)
    merges: List[MergeResult] = field(default_factory=list)
    commit: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def conflicts(self) -> List[Conflicted]:
        return [m for m in self.merges if isinstance(m, Conflicted)]

    @property
    def ok(self) -> bool:
        return self.state == CoordinatorState.COMPLETED and self.summary.ok
