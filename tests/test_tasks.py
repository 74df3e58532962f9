"""Tests for template setup tasks."""

import pytest

from dotsync.exceptions import DotsyncTaskError
from dotsync.manifest import Manifest
from dotsync.models import Platform, SetupTask
from dotsync.tasks import run_tasks, select_tasks

TASKS = [
    SetupTask("echo init", (Platform.UNIX, Platform.WINDOWS), "init"),
    SetupTask("echo unix-update", (Platform.UNIX,), "update"),
    SetupTask("echo always", (Platform.WINDOWS,), "always"),
]


class TestSelectTasks:
    def test_filters_by_phase_and_platform(self):
        manifest = Manifest(tasks=TASKS)

        assert [t.command for t in select_tasks(manifest, Platform.UNIX, "init")] == [
            "echo init"
        ]
        assert [
            t.command for t in select_tasks(manifest, Platform.UNIX, "update")
        ] == ["echo unix-update"]
        assert [
            t.command for t in select_tasks(manifest, Platform.WINDOWS, "update")
        ] == ["echo always"]


class TestRunTasks:
    def test_runs_in_local_root(self, tree, make_ctx, local_root):
        tree.build()

        run_tasks(make_ctx(), [SetupTask("echo hi > out.txt")])

        assert (local_root / "out.txt").read_text().strip() == "hi"

    def test_stops_at_first_failure(self, tree, make_ctx, local_root):
        tree.build()

        with pytest.raises(DotsyncTaskError, match="exit code 3"):
            run_tasks(
                make_ctx(),
                [SetupTask("exit 3"), SetupTask("echo never > out.txt")],
            )

        assert not (local_root / "out.txt").exists()
