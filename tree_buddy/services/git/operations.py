"""Git facade used by the orchestration layer."""

from typing import Iterable, List, Optional, Tuple

from tree_buddy.logging_config import get_logger
from tree_buddy.models.branch import Branch, GitStatus
from tree_buddy.models.worktree import CreateWorktreeOptions
from tree_buddy.services.git.branch_queries import BranchQueries
from tree_buddy.services.git.runner import GitRunner
from tree_buddy.services.git.status import StatusService
from tree_buddy.services.git.worktrees import WorktreeService
from tree_buddy.settings import Settings

logger = get_logger(__name__)


class GitOperations:
    """Everything tree-buddy asks of git, behind one object.

    Queries never raise: they degrade to empty lists and zeroed statuses.
    User actions (create, lock, fetch, pull) raise GitOperationError.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.runner = GitRunner(timeout=settings.git_timeout)
        self.worktree_service = WorktreeService(self.runner)
        self.status_service = StatusService(self.runner, max_workers=settings.status_concurrency)
        self.branch_queries = BranchQueries(self.runner, network_timeout=settings.network_timeout)
        logger.debug("Git operations initialized")

    # Worktrees

    def list_worktrees(self, root: str) -> List[Branch]:
        return self.worktree_service.list_worktrees(root)

    def create_worktree(self, opts: CreateWorktreeOptions) -> None:
        exists = self.branch_queries.branch_exists(
            opts.repo_root, opts.branch
        ) or self.branch_queries.remote_branch_exists(opts.repo_root, opts.branch)
        self.worktree_service.create_worktree(opts, branch_exists=exists)

    def remove_worktree(self, root: str, path: str, force: bool = False) -> Tuple[bool, Optional[str]]:
        return self.worktree_service.remove_worktree(root, path, force)

    def prune_worktrees(self, root: str) -> Tuple[bool, Optional[str]]:
        return self.worktree_service.prune_worktrees(root)

    def lock_worktree(self, path: str, reason: Optional[str] = None) -> None:
        self.worktree_service.lock_worktree(path, reason)

    def unlock_worktree(self, path: str) -> None:
        self.worktree_service.unlock_worktree(path)

    # Status

    def get_status(self, path: str) -> GitStatus:
        return self.status_service.get_status(path)

    def refresh_statuses(self, branches: Iterable[Branch]) -> List[Branch]:
        return self.status_service.refresh_statuses(branches)

    # Branches

    def get_main_branch(self, root: str) -> str:
        return self.branch_queries.get_main_branch(root)

    def get_merged_branches(self, root: str, main_branch: str) -> List[str]:
        return self.branch_queries.get_merged_branches(root, main_branch)

    def get_local_branches(self, root: str) -> List[str]:
        return self.branch_queries.get_local_branches(root)

    def get_remote_branches(self, root: str) -> List[str]:
        return self.branch_queries.get_remote_branches(root)

    def get_repo_root(self, path: str) -> Optional[str]:
        return self.branch_queries.get_repo_root(path)

    def fetch(self, path: str) -> None:
        self.branch_queries.fetch(path)

    def pull(self, path: str) -> str:
        return self.branch_queries.pull(path)
