"""Worktree status queries for tree-buddy."""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional

from tree_buddy.constants import STATUS_CONCURRENCY
from tree_buddy.logging_config import get_logger
from tree_buddy.models.branch import Branch, GitStatus
from tree_buddy.services.git.runner import GitRunner

logger = get_logger(__name__)


def parse_porcelain_status(output: str) -> dict:
    """Parse ``git status --porcelain`` output.

    Porcelain format is ``XY filename`` where X is the index (staged) state
    and Y the working tree state; ``??`` marks untracked files.

    Returns:
        Dict with 'modified', 'untracked', 'staged' boolean flags
    """
    has_modified = False
    has_untracked = False
    has_staged = False

    for line in output.split("\n"):
        if len(line) < 2:
            continue

        if line.startswith("??"):
            has_untracked = True
            continue

        index_status = line[0]
        worktree_status = line[1]

        if index_status != " ":
            has_staged = True
        if worktree_status != " ":
            has_modified = True

    return {
        "modified": has_modified,
        "untracked": has_untracked,
        "staged": has_staged,
    }


def parse_left_right_count(output: Optional[str]) -> tuple:
    """Parse ``rev-list --left-right --count @{u}...HEAD`` into (ahead, behind).

    The left column counts upstream-only commits (behind), the right column
    local-only commits (ahead). Anything unparsable reads as (0, 0).
    """
    if not output:
        return 0, 0
    parts = output.split()
    if len(parts) != 2:
        return 0, 0
    try:
        behind, ahead = int(parts[0]), int(parts[1])
    except ValueError:
        return 0, 0
    return ahead, behind


class StatusService:
    """Computes dirty and ahead/behind state of worktrees."""

    def __init__(self, runner: GitRunner, max_workers: int = STATUS_CONCURRENCY):
        self.runner = runner
        self.max_workers = max_workers

    def _is_dirty(self, path: str) -> bool:
        output = self.runner.try_run(path, "status", "--porcelain")
        if not output:
            return False
        details = parse_porcelain_status(output)
        return details["modified"] or details["untracked"] or details["staged"]

    def _ahead_behind(self, path: str) -> tuple:
        # Fails when there is no upstream, which reads as in sync
        output = self.runner.try_run(path, "rev-list", "--left-right", "--count", "@{u}...HEAD")
        return parse_left_right_count(output)

    def get_status(self, path: str) -> GitStatus:
        """Get the status of the worktree at ``path``.

        The dirty check and the upstream comparison run concurrently. Never
        raises: a broken path yields a zeroed status stamped with the query
        time.
        """
        ts = time.time()
        try:
            with ThreadPoolExecutor(max_workers=2) as executor:
                dirty_future = executor.submit(self._is_dirty, path)
                counts_future = executor.submit(self._ahead_behind, path)
                dirty = dirty_future.result()
                ahead, behind = counts_future.result()
        except Exception as e:
            logger.warning(f"Could not get status for {path}: {e}")
            return GitStatus.empty(ts=ts)

        return GitStatus(ahead=ahead, behind=behind, dirty=dirty, ts=ts)

    def refresh_statuses(self, branches: Iterable[Branch]) -> List[Branch]:
        """Return ``branches`` with fresh statuses, in the same order.

        At most ``max_workers`` worktrees are queried at once.
        """
        branches = list(branches)
        if not branches:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            statuses = list(executor.map(lambda b: self.get_status(b.path), branches))

        return [branch.with_status(status) for branch, status in zip(branches, statuses)]
