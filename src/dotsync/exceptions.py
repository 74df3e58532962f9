"""Exception classes for dotsync - a template-driven dotfiles synchronizer."""

from typing import List, TypedDict


# Type definitions for structured data
class LinkCheckDict(TypedDict):
    """Type definition for link check results."""

    valid: List[str]
    missing: List[str]
    wrong_target: List[str]
    not_symlink: List[str]
    broken: List[str]


class AnswersDict(TypedDict):
    """Type definition for the answers file written after each render."""

    src: str
    commit: str
    data: dict


class DotsyncError(Exception):
    """Base exception for all dotsync-related errors."""

    pass


class DotsyncConfigError(DotsyncError):
    """Raised when the mapping manifest is malformed or ambiguous."""

    pass


class DotsyncStructureError(DotsyncError):
    """Raised when the rendered tree has an invalid layout."""

    pass


class DotsyncIOError(DotsyncError, OSError):
    """Raised when an existing entry cannot be read or moved during backup."""

    pass


class DotsyncLinkError(DotsyncError):
    """Raised when a symbolic link cannot be created."""

    pass


class DotsyncRepositoryError(DotsyncError):
    """Errors related to the local repository."""

    pass


class DotsyncRepositoryNotFoundError(DotsyncRepositoryError):
    """Raised when the local root is not an initialized dotsync repository."""

    pass


class DotsyncDirtyTreeError(DotsyncRepositoryError):
    """Raised when the local tree has uncommitted modifications."""

    pass


class DotsyncGitError(DotsyncRepositoryError):
    """Errors related to Git operations."""

    pass


class DotsyncRenderError(DotsyncError):
    """Errors raised while rendering the template."""

    pass


class DotsyncConflictError(DotsyncRenderError):
    """Raised when a template update conflicts with local changes."""

    pass


class DotsyncLockError(DotsyncError):
    """Raised when another run already holds the local root."""

    pass


class DotsyncTaskError(DotsyncError):
    """Raised when a template setup task fails."""

    pass
