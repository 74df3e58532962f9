"""Explicit per-run state shared by the resolver, backup and link steps."""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import typer
from rich.console import Console

from .config import get_home_dir, load_config
from .manifest import Manifest, load_manifest
from .models import Platform

# Global console instance
console = Console()


def detect_platform() -> Platform:
    """Return the platform category of the running host."""
    return Platform.WINDOWS if os.name == "nt" else Platform.UNIX


@dataclass
class SyncContext:
    """Everything one run needs: tree root, manifest, platform and clock."""

    local_root: Path
    home: Path
    platform: Platform
    manifest: Manifest
    config: Dict[str, Any]
    timestamp: str
    quiet: bool = False
    backup_run_dir: Optional[Path] = None

    @classmethod
    def create(
        cls,
        local_root: Path,
        home: Optional[Path] = None,
        platform: Optional[Platform] = None,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], datetime] = datetime.now,
        quiet: bool = False,
    ) -> "SyncContext":
        if home is None:
            home = get_home_dir()
        if config is None:
            config = load_config(home)
        local_root = Path(local_root).expanduser().absolute()
        manifest = load_manifest(local_root / config["manifest_filename"])
        return cls(
            local_root=local_root,
            home=home,
            platform=platform or detect_platform(),
            manifest=manifest,
            config=config,
            timestamp=clock().strftime(config["timestamp_format"]),
            quiet=quiet,
        )

    def reload_manifest(self) -> None:
        """Re-read the manifest after the rendered tree changed."""
        self.manifest = load_manifest(self.manifest_path)

    @property
    def manifest_path(self) -> Path:
        return self.local_root / self.config["manifest_filename"]

    @property
    def answers_path(self) -> Path:
        return self.local_root / self.config["answers_filename"]

    @property
    def backup_root(self) -> Path:
        return self.local_root / self.config["backup_dir_name"]

    @property
    def lock_path(self) -> Path:
        return self.local_root / self.config["lock_filename"]

    def echo(self, message: str, fg: Optional[str] = None, err: bool = False) -> None:
        """Print a status line unless the run is quiet."""
        if not self.quiet:
            typer.secho(message, fg=fg, err=err)
