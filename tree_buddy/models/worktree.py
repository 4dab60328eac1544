"""Worktree discovery and deletion models."""

from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class WorktreeCandidate:
    """A repository found on disk that could be added as a project."""

    path: str
    name: str
    branch_count: int

    def to_dict(self) -> dict:
        return {"path": self.path, "name": self.name, "branch_count": self.branch_count}

    @classmethod
    def from_dict(cls, data: dict) -> "WorktreeCandidate":
        return cls(
            path=data["path"],
            name=data.get("name") or data["path"],
            branch_count=int(data.get("branch_count", 0)),
        )


@dataclass(frozen=True)
class ScanCache:
    """Result of a filesystem scan taken at ``ts``."""

    ts: float
    candidates: Tuple[WorktreeCandidate, ...] = ()

    def to_dict(self) -> dict:
        return {"ts": self.ts, "candidates": [c.to_dict() for c in self.candidates]}

    @classmethod
    def from_dict(cls, data: dict) -> "ScanCache":
        return cls(
            ts=float(data["ts"]),
            candidates=tuple(WorktreeCandidate.from_dict(c) for c in data.get("candidates") or []),
        )


@dataclass(frozen=True)
class CreateWorktreeOptions:
    """Arguments for ``git worktree add``."""

    repo_root: str
    path: str
    branch: str
    create_branch: bool = False
    base_branch: Optional[str] = None


@dataclass(frozen=True)
class DeleteItem:
    """One worktree to remove in a bulk delete."""

    root: str
    path: str
    force: bool = False
    use_trash: bool = False


class ProgressStatus(Enum):
    STARTED = "started"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class DeleteProgress:
    path: str
    status: ProgressStatus
