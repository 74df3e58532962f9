"""Tests for dotsync exception classes."""

import pytest

from dotsync.exceptions import (
    DotsyncConfigError,
    DotsyncConflictError,
    DotsyncDirtyTreeError,
    DotsyncError,
    DotsyncGitError,
    DotsyncIOError,
    DotsyncLinkError,
    DotsyncLockError,
    DotsyncRenderError,
    DotsyncRepositoryError,
    DotsyncRepositoryNotFoundError,
    DotsyncStructureError,
    DotsyncTaskError,
)


class TestExceptionHierarchy:
    """Test exception class hierarchy and behavior."""

    @pytest.mark.parametrize(
        "error_class",
        [
            DotsyncConfigError,
            DotsyncStructureError,
            DotsyncIOError,
            DotsyncLinkError,
            DotsyncRepositoryError,
            DotsyncRenderError,
            DotsyncLockError,
            DotsyncTaskError,
        ],
    )
    def test_all_errors_derive_from_base(self, error_class):
        error = error_class("Something failed")
        assert str(error) == "Something failed"
        assert isinstance(error, DotsyncError)

    def test_io_error_is_an_os_error(self):
        assert isinstance(DotsyncIOError("denied"), OSError)

    @pytest.mark.parametrize(
        "error_class",
        [DotsyncRepositoryNotFoundError, DotsyncDirtyTreeError, DotsyncGitError],
    )
    def test_repository_errors(self, error_class):
        assert issubclass(error_class, DotsyncRepositoryError)

    def test_conflict_is_a_render_error(self):
        with pytest.raises(DotsyncRenderError):
            raise DotsyncConflictError("2 file(s) conflict")


class TestExceptionUsage:
    """Test exception usage patterns."""

    def test_exception_chaining(self):
        try:
            try:
                raise PermissionError("denied")
            except PermissionError as e:
                raise DotsyncLinkError("Cannot link .zshrc") from e
        except DotsyncLinkError as e:
            assert str(e) == "Cannot link .zshrc"
            assert isinstance(e.__cause__, PermissionError)

    def test_base_catches_everything(self):
        for error in (DotsyncLockError("held"), DotsyncStructureError("both")):
            with pytest.raises(DotsyncError):
                raise error
