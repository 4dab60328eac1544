"""Branch model and related enums"""
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import Optional


class SyncStatus(Enum):
    """Stoplight colour for a worktree's sync state."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class CleanupIcon(Enum):
    """Hint shown next to a worktree that may need attention."""
    BROOM = "broom"    # merged, safe to clean up
    PENCIL = "pencil"  # has uncommitted changes


@dataclass(frozen=True)
class GitStatus:
    """Sync and dirty state of one worktree at query time ``ts``."""
    ahead: int = 0
    behind: int = 0
    dirty: bool = False
    ts: float = 0.0

    @classmethod
    def empty(cls, ts: float = 0.0) -> "GitStatus":
        return cls(ahead=0, behind=0, dirty=False, ts=ts)

    def to_dict(self) -> dict:
        return {"ahead": self.ahead, "behind": self.behind, "dirty": self.dirty, "ts": self.ts}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "GitStatus":
        if not data:
            return cls.empty()
        return cls(
            ahead=int(data.get("ahead", 0) or 0),
            behind=int(data.get("behind", 0) or 0),
            dirty=bool(data.get("dirty", False)),
            ts=float(data.get("ts", 0) or 0),
        )


def to_sync_status(status: GitStatus) -> SyncStatus:
    """Map a GitStatus to its stoplight colour. Being behind wins over dirty."""
    if status.behind > 0:
        return SyncStatus.RED
    if status.dirty:
        return SyncStatus.YELLOW
    return SyncStatus.GREEN


@dataclass(frozen=True)
class DerivedStatus:
    """Annotations recomputed on every refresh. Never persisted."""
    merged: bool = False
    has_uncommitted: bool = False
    cleanup_icon: Optional[CleanupIcon] = None


def derive_status(status: GitStatus, merged: bool, locked: bool, is_main: bool) -> DerivedStatus:
    """Compute the cleanup annotation for one worktree.

    Uncommitted changes always show the pencil. Otherwise a merged branch
    that is neither locked nor the main checkout gets the broom.
    """
    icon = None
    if status.dirty:
        icon = CleanupIcon.PENCIL
    elif merged and not locked and not is_main:
        icon = CleanupIcon.BROOM
    return DerivedStatus(merged=merged, has_uncommitted=status.dirty, cleanup_icon=icon)


@dataclass(frozen=True)
class Branch:
    """A worktree and the branch checked out in it."""
    name: str
    path: str
    status: GitStatus = field(default_factory=GitStatus)
    locked: bool = False
    is_main: bool = False
    is_current: bool = False
    derived: Optional[DerivedStatus] = None

    @property
    def merged(self) -> bool:
        return bool(self.derived and self.derived.merged)

    @property
    def has_uncommitted(self) -> bool:
        return bool(self.derived and self.derived.has_uncommitted)

    @property
    def cleanup_icon_type(self) -> Optional[CleanupIcon]:
        return self.derived.cleanup_icon if self.derived else None

    @property
    def show_cleanup_icon(self) -> bool:
        return self.cleanup_icon_type is not None

    def with_status(self, status: GitStatus) -> "Branch":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        """Serialize for persistence. Derived fields are not written."""
        return {
            "name": self.name,
            "path": self.path,
            "status": self.status.to_dict(),
            "locked": self.locked,
            "is_main": self.is_main,
            "is_current": self.is_current,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Branch":
        # merged/cleanup flags from older files are ignored, they are recomputed
        return cls(
            name=data["name"],
            path=data["path"],
            status=GitStatus.from_dict(data.get("status")),
            locked=bool(data.get("locked", False)),
            is_main=bool(data.get("is_main", False)),
            is_current=bool(data.get("is_current", False)),
        )

    def __str__(self) -> str:
        main_marker = " (main)" if self.is_main else ""
        lock_marker = " [locked]" if self.locked else ""
        return f"{self.name} @ {self.path}{main_marker}{lock_marker}"
