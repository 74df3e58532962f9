"""Shared pytest fixtures and configuration."""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import pytest

from dotsync.config import load_config
from dotsync.context import SyncContext
from dotsync.models import Platform
from tests.helpers.builders import TemplateRepoBuilder, TreeBuilder

FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5)
FIXED_TIMESTAMP = "20240102_030405"


def fixed_clock() -> datetime:
    return FIXED_TIME


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory and point $HOME at it."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def local_root(tmp_path: Path) -> Path:
    return tmp_path / "dotfiles"


@pytest.fixture
def tree(local_root: Path) -> TreeBuilder:
    """Builder for a rendered tree at local_root."""
    return TreeBuilder(local_root)


@pytest.fixture
def template_repo(tmp_path: Path) -> TemplateRepoBuilder:
    """Empty Git repository to build a dotfiles template in."""
    return TemplateRepoBuilder(tmp_path / "template")


@pytest.fixture
def make_ctx(
    local_root: Path, temp_home: Path
) -> Callable[..., SyncContext]:
    """Factory for a SyncContext with a fixed clock and a Unix host."""

    def _make(
        platform: Platform = Platform.UNIX,
        root: Optional[Path] = None,
        quiet: bool = True,
    ) -> SyncContext:
        return SyncContext.create(
            root or local_root,
            home=temp_home,
            platform=platform,
            config=load_config(temp_home),
            clock=fixed_clock,
            quiet=quiet,
        )

    return _make
