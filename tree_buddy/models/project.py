"""Project model"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

from tree_buddy.models.branch import Branch


class ProjectStatus(Enum):
    """Outcome of the last refresh of a project."""
    OK = "ok"
    ERROR = "error"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class Project:
    """A repository and all of its worktrees."""
    id: str
    name: str
    root: str
    branches: Tuple[Branch, ...] = ()
    status: ProjectStatus = ProjectStatus.OK
    last_updated: Optional[float] = None

    @property
    def main_branch(self) -> Optional[Branch]:
        return next((b for b in self.branches if b.is_main), None)

    def find_branch(self, path: str) -> Optional[Branch]:
        return next((b for b in self.branches if b.path == path), None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "root": self.root,
            "branches": [b.to_dict() for b in self.branches],
            "status": self.status.value,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        try:
            status = ProjectStatus(data.get("status") or ProjectStatus.OK.value)
        except ValueError:
            status = ProjectStatus.OK
        # A project saved mid-refresh is not refreshing anymore after a restart
        if status is ProjectStatus.REFRESHING:
            status = ProjectStatus.OK
        return cls(
            id=data["id"],
            name=data.get("name") or data["root"],
            root=data["root"],
            branches=tuple(Branch.from_dict(b) for b in data.get("branches") or []),
            status=status,
            last_updated=data.get("last_updated"),
        )
