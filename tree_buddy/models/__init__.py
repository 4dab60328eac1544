"""Data models for tree-buddy."""

from .branch import Branch, CleanupIcon, DerivedStatus, GitStatus, SyncStatus, derive_status, to_sync_status
from .project import Project, ProjectStatus
from .scope import ScopeNode
from .worktree import (
    CreateWorktreeOptions,
    DeleteItem,
    DeleteProgress,
    ProgressStatus,
    ScanCache,
    WorktreeCandidate,
)

__all__ = [
    "Branch",
    "CleanupIcon",
    "CreateWorktreeOptions",
    "DeleteItem",
    "DeleteProgress",
    "DerivedStatus",
    "GitStatus",
    "ProgressStatus",
    "Project",
    "ProjectStatus",
    "ScanCache",
    "ScopeNode",
    "SyncStatus",
    "WorktreeCandidate",
    "derive_status",
    "to_sync_status",
]
