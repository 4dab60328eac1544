"""Filesystem discovery of repositories that have worktrees."""

import os
import time
from pathlib import Path
from typing import List, Optional

from tree_buddy.constants import SCAN_MAX_DEPTH, SCAN_SKIP_DIRS
from tree_buddy.logging_config import get_logger
from tree_buddy.models.worktree import ScanCache, WorktreeCandidate
from tree_buddy.services.git.operations import GitOperations

logger = get_logger(__name__)


def is_cache_stale(cache: Optional[ScanCache], max_age: float, now: Optional[float] = None) -> bool:
    """True when there is no cache or it is older than ``max_age`` seconds."""
    if cache is None:
        return True
    now = time.time() if now is None else now
    return now - cache.ts > max_age


def is_bare_repo(path: Path) -> bool:
    return (path / "HEAD").exists() and (path / "objects").exists()


def is_worktree_root(path: Path) -> bool:
    """Check if ``path`` is the root of a repository that has linked worktrees.

    That is a bare repository with a ``worktrees`` directory, or a regular
    checkout whose ``.git`` directory has one. Linked worktrees (``.git`` is
    a file) are not roots: their repository is found through its main
    checkout.
    """
    if (path / "HEAD").exists() and (path / "worktrees").is_dir():
        return True

    git_dir = path / ".git"
    return git_dir.is_dir() and (git_dir / "worktrees").is_dir()


def is_git_checkout(path: Path) -> bool:
    return (path / ".git").exists()


class ScanService:
    """Walks a directory tree looking for worktree-shaped repositories."""

    def __init__(self, git_ops: GitOperations):
        self.git_ops = git_ops

    def scan_for_worktrees(self, directory: str, max_depth: int = SCAN_MAX_DEPTH) -> List[WorktreeCandidate]:
        """Scan ``directory`` up to ``max_depth`` levels deep.

        Hidden directories and ``node_modules`` are skipped, and the walk
        does not descend into a repository once one is found.
        """
        results: List[WorktreeCandidate] = []
        self._scan(Path(directory).expanduser(), 0, max_depth, results)
        logger.info(f"Scan of {directory} found {len(results)} candidates")
        return results

    def _scan(self, path: Path, depth: int, max_depth: int, results: List[WorktreeCandidate]) -> None:
        if depth > max_depth:
            return

        name = path.name
        if depth > 0 and (name.startswith(".") or name in SCAN_SKIP_DIRS):
            return

        try:
            if not path.is_dir():
                return

            if is_worktree_root(path) or is_bare_repo(path):
                branches = self.git_ops.list_worktrees(str(path))
                if branches:
                    display_name = name[: -len(".git")] if name.endswith(".git") else name
                    results.append(
                        WorktreeCandidate(path=str(path), name=display_name, branch_count=len(branches))
                    )
                    return

            if depth > 0 and is_git_checkout(path):
                # A plain repository or linked worktree; nothing to find inside
                return

            entries = sorted(os.scandir(path), key=lambda e: e.name)
        except OSError as e:
            logger.debug(f"Skipping {path}: {e}")
            return

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    self._scan(Path(entry.path), depth + 1, max_depth, results)
            except OSError as e:
                logger.debug(f"Skipping {entry.path}: {e}")
