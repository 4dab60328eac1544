"""Custom exceptions for tree-buddy"""

from typing import Optional


class TreeBuddyError(Exception):
    """Base exception for all tree-buddy errors."""
    pass


class ConfigError(TreeBuddyError):
    """Exception raised for invalid configuration values."""
    pass


class GitOperationError(TreeBuddyError):
    """Exception raised for errors in Git operations."""

    def __init__(
        self,
        operation: str,
        path: Optional[str] = None,
        message: Optional[str] = None,
        stderr: str = "",
        status: Optional[int] = None,
    ):
        self.operation = operation
        self.path = path
        self.message = message
        self.stderr = stderr or ""
        self.status = status

        error_msg = f"Git operation '{operation}' failed"
        if path:
            error_msg += f" in '{path}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class WorktreeExistsError(GitOperationError):
    """Exception raised when the worktree path or branch name is already taken."""


class BranchInUseError(GitOperationError):
    """Exception raised when a branch is already checked out in another worktree."""


class ProjectNotFoundError(TreeBuddyError):
    """Exception raised when a project id is not registered."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")


class ProjectRefreshError(TreeBuddyError):
    """Exception raised when git gives no usable answer for a project."""

    def __init__(self, root: str, message: str):
        self.root = root
        super().__init__(f"Could not refresh '{root}': {message}")
