"""Tests for backing up and restoring destinations."""

import shutil
from unittest.mock import patch

import pytest

from dotsync.backup import (
    backup_existing,
    get_run_backup_dir,
    list_backups,
    needs_backup,
    restore_backup,
)
from dotsync.exceptions import DotsyncIOError
from dotsync.resolver import resolve_managed_files
from tests.conftest import FIXED_TIMESTAMP
from tests.helpers.assertions import assert_backup_contains, backup_files


@pytest.fixture
def managed(tree, make_ctx):
    tree.with_file("common/.gitconfig", "[user]\n  name = template\n").build()
    ctx = make_ctx()
    return ctx, resolve_managed_files(ctx)[0]


class TestBackupExisting:
    def test_nothing_at_target_is_noop(self, managed):
        ctx, item = managed

        assert backup_existing(ctx, item) is None
        assert backup_files(ctx.backup_root) == []

    def test_existing_file_is_moved(self, managed):
        ctx, item = managed
        item.target_path.write_text("original X")

        record = backup_existing(ctx, item)

        assert record is not None
        assert record.backup_path == (
            ctx.backup_root / FIXED_TIMESTAMP / "common" / ".gitconfig"
        )
        assert_backup_contains(record.backup_path, "original X")
        assert not item.target_path.exists()

    def test_correct_link_is_noop(self, managed):
        ctx, item = managed
        item.target_path.symlink_to(item.source_path)

        assert backup_existing(ctx, item) is None
        assert item.target_path.is_symlink()

    def test_identical_file_needs_no_backup(self, managed):
        ctx, item = managed
        shutil.copy(item.source_path, item.target_path)

        assert needs_backup(item) is False
        assert backup_existing(ctx, item) is None
        assert item.target_path.is_file()

    def test_differing_symlink_is_moved(self, managed, tmp_path):
        ctx, item = managed
        elsewhere = tmp_path / "elsewhere"
        elsewhere.write_text("other")
        item.target_path.symlink_to(elsewhere)

        record = backup_existing(ctx, item)

        assert record.backup_path.is_symlink()
        assert record.backup_path.resolve() == elsewhere
        assert not item.target_path.is_symlink()

    def test_dangling_symlink_is_moved(self, managed, tmp_path):
        ctx, item = managed
        item.target_path.symlink_to(tmp_path / "gone")

        record = backup_existing(ctx, item)

        assert record is not None
        assert not item.target_path.is_symlink()

    def test_directory_at_target_is_moved(self, managed):
        ctx, item = managed
        item.target_path.mkdir()
        (item.target_path / "inner").write_text("kept")

        record = backup_existing(ctx, item)

        assert (record.backup_path / "inner").read_text() == "kept"

    def test_move_failure_raises_io_error(self, managed):
        ctx, item = managed
        item.target_path.write_text("original")

        with patch("dotsync.backup.shutil.move", side_effect=PermissionError("denied")):
            with pytest.raises(DotsyncIOError, match="denied"):
                backup_existing(ctx, item)

        assert item.target_path.read_text() == "original"

    def test_io_error_is_an_oserror(self):
        assert issubclass(DotsyncIOError, OSError)


class TestRunBackupDir:
    def test_run_dir_is_reused_within_a_run(self, managed):
        ctx, _item = managed

        assert get_run_backup_dir(ctx) == get_run_backup_dir(ctx)

    def test_existing_run_dir_is_never_reused(self, managed, make_ctx):
        ctx, _item = managed
        (ctx.backup_root / FIXED_TIMESTAMP).mkdir(parents=True)

        second = make_ctx()

        assert get_run_backup_dir(second).name == f"{FIXED_TIMESTAMP}_1"


class TestListAndRestore:
    def test_list_backups_newest_first(self, managed):
        ctx, _item = managed
        for run in ("20230101_000000", "20240101_000000"):
            path = ctx.backup_root / run / "common" / ".gitconfig"
            path.parent.mkdir(parents=True)
            path.write_text(run)

        runs = list_backups(ctx)

        assert list(runs) == ["20240101_000000", "20230101_000000"]
        assert runs["20240101_000000"][0].name == ".gitconfig"

    def test_list_backups_without_folder(self, managed):
        ctx, _item = managed

        assert list_backups(ctx) == {}

    def test_restore_replaces_managed_link_and_keeps_backup(self, managed):
        ctx, item = managed
        item.target_path.write_text("original X")
        record = backup_existing(ctx, item)
        item.target_path.symlink_to(item.source_path)

        restored = restore_backup(ctx, record.backup_path)

        assert restored == item.target_path
        assert not item.target_path.is_symlink()
        assert item.target_path.read_text() == "original X"
        assert record.backup_path.exists()

    def test_restore_refuses_unmanaged_file(self, managed):
        ctx, item = managed
        item.target_path.write_text("original X")
        record = backup_existing(ctx, item)
        item.target_path.write_text("something new")

        with pytest.raises(DotsyncIOError, match="refusing"):
            restore_backup(ctx, record.backup_path)

        assert item.target_path.read_text() == "something new"

    def test_restore_rejects_paths_outside_backups(self, managed, tmp_path):
        ctx, _item = managed
        stray = tmp_path / "stray"
        stray.write_text("x")

        with pytest.raises(DotsyncIOError, match="not inside"):
            restore_backup(ctx, stray)
