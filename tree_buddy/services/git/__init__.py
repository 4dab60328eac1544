"""Git-related services for tree-buddy."""

from .runner import GitRunner
from .worktrees import WorktreeService
from .status import StatusService
from .branch_queries import BranchQueries
from .operations import GitOperations

__all__ = [
    "GitRunner",
    "WorktreeService",
    "StatusService",
    "BranchQueries",
    "GitOperations",
]
