"""
Test data builders for dotsync tests.

This module provides builder classes for rendered trees and template
repositories so tests can describe the files they need in one place.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from faker import Faker
from git import Actor, Repo

fake = Faker()

TEST_ACTOR = Actor("dotsync tests", "tests@example.com")


class TreeBuilder:
    """Builder for a rendered local tree (common/, unix/, windows/, manifest)."""

    def __init__(self, root: Path):
        self.root = root
        self._files: Dict[str, str] = {}
        self._manifest: Optional[Dict[str, Any]] = None
        self._manifest_text: Optional[str] = None

    def with_file(self, relative: str, content: Optional[str] = None) -> "TreeBuilder":
        """Add a file at a category-qualified path such as 'common/.zshrc'."""
        self._files[relative] = content if content is not None else fake.sentence()
        return self

    def with_mapping(self, source: str, target: str) -> "TreeBuilder":
        manifest = self._manifest or {}
        manifest.setdefault("mappings", {})[source] = target
        self._manifest = manifest
        return self

    def with_manifest(self, manifest: Dict[str, Any]) -> "TreeBuilder":
        self._manifest = manifest
        return self

    def with_manifest_text(self, text: str) -> "TreeBuilder":
        self._manifest_text = text
        return self

    def build(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / "common").mkdir(exist_ok=True)
        for relative, content in self._files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        if self._manifest_text is not None:
            (self.root / "dotsync.json").write_text(self._manifest_text)
        elif self._manifest is not None:
            (self.root / "dotsync.json").write_text(json.dumps(self._manifest))
        return self.root


class TemplateRepoBuilder:
    """Builder for a Git template repository with successive commits."""

    def __init__(self, root: Path):
        self.root = root
        self.repo = Repo.init(str(root))

    def write(self, relative: str, content: str) -> "TemplateRepoBuilder":
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return self

    def remove(self, relative: str) -> "TemplateRepoBuilder":
        (self.root / relative).unlink()
        self.repo.index.remove([relative])
        return self

    def write_manifest(self, manifest: Dict[str, Any]) -> "TemplateRepoBuilder":
        return self.write("dotsync.json", json.dumps(manifest, indent=2))

    def commit(self, message: Optional[str] = None) -> str:
        self.repo.git.add("-A")
        commit = self.repo.index.commit(
            message or fake.sentence(), author=TEST_ACTOR, committer=TEST_ACTOR
        )
        return commit.hexsha

    @property
    def url(self) -> str:
        return str(self.root)


def multiline(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"
