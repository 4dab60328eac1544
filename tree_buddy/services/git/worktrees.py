"""Worktree operations service for tree-buddy."""

from typing import Any, Dict, List, Optional, Tuple

from tree_buddy.constants import WORKTREE_GONE_MARKERS
from tree_buddy.exceptions import BranchInUseError, GitOperationError, WorktreeExistsError
from tree_buddy.logging_config import get_logger
from tree_buddy.models.branch import Branch, GitStatus
from tree_buddy.models.worktree import CreateWorktreeOptions
from tree_buddy.services.git.runner import GitRunner

logger = get_logger(__name__)

HEADS_PREFIX = "refs/heads/"


def parse_worktree_porcelain(output: str) -> List[Branch]:
    """Parse ``git worktree list --porcelain`` output into branches.

    Format (one record per worktree, records separated by a blank line):
        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>     (or "detached", or "bare")
        locked [reason]              (optional)
        prunable [reason]            (optional)

    Bare and detached records have no branch and are skipped. The first
    non-bare record is the main checkout; when it is detached no branch
    is marked main.
    """
    branches: List[Branch] = []
    current: Dict[str, Any] = {}
    checkouts_seen = 0

    def flush():
        nonlocal checkouts_seen
        path = current.get("path")
        name = current.get("branch")
        is_main = False
        if path and not current.get("bare"):
            is_main = checkouts_seen == 0
            checkouts_seen += 1
        if path and name:
            branches.append(
                Branch(
                    name=name,
                    path=path,
                    status=GitStatus.empty(),
                    locked=current.get("locked", False),
                    is_main=is_main,
                    is_current=is_main,
                )
            )
        elif path:
            logger.debug(f"Skipping worktree without branch at {path}")

    for line in output.split("\n"):
        line = line.rstrip("\r")

        if not line.strip():
            # Empty line marks end of worktree entry
            if current:
                flush()
                current = {}
            continue

        if line.startswith("worktree "):
            current["path"] = line[len("worktree "):]
        elif line.startswith("branch "):
            ref = line[len("branch "):].strip()
            current["branch"] = ref[len(HEADS_PREFIX):] if ref.startswith(HEADS_PREFIX) else ref
        elif line == "locked" or line.startswith("locked "):
            current["locked"] = True
        elif line == "bare":
            current["bare"] = True
            current["branch"] = None
        elif line == "detached":
            current["branch"] = None

    # Handle last entry if no trailing blank line
    if current:
        flush()

    return branches


def is_worktree_gone(stderr: str) -> bool:
    """True when git reports the worktree is already gone."""
    return any(marker in stderr for marker in WORKTREE_GONE_MARKERS)


class WorktreeService:
    """Service for managing git worktrees."""

    def __init__(self, runner: GitRunner):
        """Initialize the worktree service.

        Args:
            runner: GitRunner used for every git invocation
        """
        self.runner = runner

    def list_worktrees(self, root: str) -> List[Branch]:
        """Get every worktree of the repository at ``root``.

        Returns:
            List of Branch objects with zeroed status. Empty if git fails
            for any reason (not a repository, no git, timeout).
        """
        output = self.runner.try_run(root, "worktree", "list", "--porcelain")
        if not output:
            logger.debug(f"Could not list worktrees in {root}")
            return []

        branches = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(branches)} worktrees in {root}")
        for branch in branches:
            logger.debug(f"  {branch}")
        return branches

    def create_worktree(self, opts: CreateWorktreeOptions, branch_exists: bool = False) -> None:
        """Create a worktree at ``opts.path``.

        The branch is created with ``-b`` when asked to, or when it exists
        neither locally nor on a remote (``branch_exists`` False). It starts
        from ``opts.base_branch`` when given, else from the current HEAD.

        Raises:
            WorktreeExistsError: path or branch name already taken
            BranchInUseError: branch already checked out in another worktree
            GitOperationError: any other git failure
        """
        if opts.create_branch or not branch_exists:
            args = ["worktree", "add", "-b", opts.branch, opts.path]
            if opts.base_branch:
                args.append(opts.base_branch)
        else:
            args = ["worktree", "add", opts.path, opts.branch]

        try:
            self.runner.run(opts.repo_root, *args)
        except GitOperationError as e:
            stderr = e.stderr.lower()
            if "already checked out" in stderr or "already used by worktree" in stderr:
                raise BranchInUseError(
                    "worktree add", opts.repo_root, e.stderr or e.message, stderr=e.stderr, status=e.status
                ) from e
            if "already exists" in stderr:
                raise WorktreeExistsError(
                    "worktree add", opts.repo_root, e.stderr or e.message, stderr=e.stderr, status=e.status
                ) from e
            raise

        logger.info(f"Created worktree for {opts.branch} at {opts.path}")

    def remove_worktree(self, root: str, path: str, force: bool = False) -> Tuple[bool, Optional[str]]:
        """Remove a worktree at the specified path.

        Args:
            root: Repository the worktree belongs to
            path: Path to the worktree directory
            force: Remove even if the working tree has uncommitted changes

        Returns:
            Tuple of (success, error_message). error_message is None on
            success. A worktree that is already gone counts as success.
        """
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(path)

        try:
            self.runner.run(root, *args)
        except GitOperationError as e:
            if is_worktree_gone(e.stderr):
                logger.info(f"Worktree at {path} is already gone")
                return True, None
            error_msg = f"git worktree remove failed ({e.message})"
            logger.error(f"Failed to remove worktree at {path}: {error_msg}")
            return False, error_msg

        logger.info(f"Removed worktree at {path}")
        return True, None

    def prune_worktrees(self, root: str) -> Tuple[bool, Optional[str]]:
        """Prune administrative records of worktrees deleted out-of-band.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self.runner.run(root, "worktree", "prune")
        except GitOperationError as e:
            error_msg = f"git worktree prune failed ({e.message})"
            logger.error(f"Failed to prune worktrees in {root}: {error_msg}")
            return False, error_msg

        logger.info(f"Pruned orphaned worktree metadata in {root}")
        return True, None

    def lock_worktree(self, path: str, reason: Optional[str] = None) -> None:
        """Lock the worktree at ``path``. Locking a locked worktree is a no-op."""
        args = ["worktree", "lock"]
        if reason:
            args.extend(["--reason", reason])
        args.append(path)
        try:
            self.runner.run(path, *args)
        except GitOperationError as e:
            if "already locked" in e.stderr:
                logger.debug(f"Worktree at {path} is already locked")
                return
            raise
        logger.info(f"Locked worktree at {path}")

    def unlock_worktree(self, path: str) -> None:
        """Unlock the worktree at ``path``. Unlocking an unlocked worktree is a no-op."""
        try:
            self.runner.run(path, "worktree", "unlock", path)
        except GitOperationError as e:
            if "is not locked" in e.stderr:
                logger.debug(f"Worktree at {path} is not locked")
                return
            raise
        logger.info(f"Unlocked worktree at {path}")
