"""Text formatting for worktree listings."""

import time
from typing import Optional

from tree_buddy.constants import (
    SYMBOL_AHEAD,
    SYMBOL_BEHIND,
    SYMBOL_BROOM,
    SYMBOL_DIRTY,
    SYMBOL_LOCKED,
    SYMBOL_MAIN,
    SYNC_COLORS,
)
from tree_buddy.models.branch import Branch, CleanupIcon, GitStatus, to_sync_status


def format_sync(status: GitStatus) -> str:
    """
    Format the sync stoplight as Rich markup.

    Args:
        status: Git status of the worktree

    Returns:
        A coloured dot
    """
    color = SYNC_COLORS[to_sync_status(status).value]
    return f"[{color}]{SYMBOL_MAIN}[/{color}]"


def format_ahead_behind(status: GitStatus) -> str:
    """
    Format ahead/behind counts, e.g. ``↑2 ↓1``. Empty when in sync.
    """
    parts = []
    if status.ahead:
        parts.append(f"{SYMBOL_AHEAD}{status.ahead}")
    if status.behind:
        parts.append(f"{SYMBOL_BEHIND}{status.behind}")
    return " ".join(parts)


def format_cleanup_icon(icon: Optional[CleanupIcon]) -> str:
    if icon is CleanupIcon.BROOM:
        return SYMBOL_BROOM
    if icon is CleanupIcon.PENCIL:
        return SYMBOL_DIRTY
    return ""


def format_branch_label(branch: Branch, label: Optional[str] = None) -> str:
    """
    Format one worktree line: stoplight, name, counts and markers.

    Args:
        branch: The worktree
        label: Name to show instead of the branch name (a scope leaf segment)

    Returns:
        Rich markup for the line
    """
    name = label or branch.name
    if branch.is_main:
        name = f"[bold]{name}[/bold]"

    parts = [format_sync(branch.status), name]
    counts = format_ahead_behind(branch.status)
    if counts:
        parts.append(counts)
    if branch.locked:
        parts.append(SYMBOL_LOCKED)
    icon = format_cleanup_icon(branch.cleanup_icon_type)
    if icon:
        parts.append(icon)
    return " ".join(parts)


def format_last_updated(ts: Optional[float], now: Optional[float] = None) -> str:
    """
    Format the time since the last refresh, e.g. ``42s ago`` or ``3m ago``.
    """
    if not ts:
        return "never"
    elapsed = max(0, int((time.time() if now is None else now) - ts))
    if elapsed < 60:
        return f"{elapsed}s ago"
    if elapsed < 3600:
        return f"{elapsed // 60}m ago"
    if elapsed < 86400:
        return f"{elapsed // 3600}h ago"
    return f"{elapsed // 86400}d ago"
