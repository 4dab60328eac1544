"""Branch query service for tree-buddy."""

from typing import List, Optional

from tree_buddy.constants import DEFAULT_MAIN_BRANCH, MAIN_BRANCH_CANDIDATES, NETWORK_TIMEOUT
from tree_buddy.logging_config import get_logger
from tree_buddy.services.git.runner import GitRunner

logger = get_logger(__name__)


def parse_merged_branches(output: str, main_branch: str) -> List[str]:
    """Parse ``git branch --merged`` output.

    Lines carry a two-column marker: ``*`` for the current branch, ``+`` for
    a branch checked out in another worktree. Detached HEAD shows up as
    ``(HEAD detached at ...)`` and is dropped, as is the main branch itself.
    """
    merged: List[str] = []
    for line in output.split("\n"):
        name = line.strip().lstrip("*+").strip()
        if not name or name.startswith("("):
            continue
        if name == main_branch or name in merged:
            continue
        merged.append(name)
    return merged


def strip_remote_prefix(ref: str) -> Optional[str]:
    """Turn ``origin/feature/x`` into ``feature/x``.

    Returns None for remote HEAD aliases (``origin/HEAD`` or a bare
    ``origin`` as printed by ``%(refname:short)``).
    """
    if "/" not in ref:
        return None
    name = ref.split("/", 1)[1]
    if not name or name == "HEAD":
        return None
    return name


class BranchQueries:
    """Service for querying branch information."""

    def __init__(self, runner: GitRunner, network_timeout: float = NETWORK_TIMEOUT):
        """Initialize the branch queries service.

        Args:
            runner: GitRunner used for every git invocation
            network_timeout: Timeout for fetch and pull
        """
        self.runner = runner
        self.network_timeout = network_timeout
        self.remote_name = "origin"

    def branch_exists(self, root: str, name: str) -> bool:
        """Check if a local branch exists."""
        return self.runner.try_run(root, "rev-parse", "--verify", "--quiet", f"refs/heads/{name}") is not None

    def remote_branch_exists(self, root: str, name: str) -> bool:
        """Check if any remote has a branch called ``name``."""
        return name in self.get_remote_branches(root)

    def get_main_branch(self, root: str) -> str:
        """Resolve the branch other branches are merged into.

        Resolution order:
            1. the default branch of origin (origin/HEAD)
            2. the first of main, master, develop that exists locally
            3. the currently checked-out branch
            4. "main"
        """
        remote_head = self.runner.try_run(
            root, "symbolic-ref", "--short", f"refs/remotes/{self.remote_name}/HEAD"
        )
        if remote_head:
            name = strip_remote_prefix(remote_head.strip())
            if name:
                logger.debug(f"Main branch for {root} from {self.remote_name}/HEAD: {name}")
                return name

        for candidate in MAIN_BRANCH_CANDIDATES:
            if self.branch_exists(root, candidate):
                logger.debug(f"Main branch for {root} from local refs: {candidate}")
                return candidate

        current = self.runner.try_run(root, "symbolic-ref", "--short", "HEAD")
        if current and current.strip():
            logger.debug(f"Main branch for {root} from HEAD: {current.strip()}")
            return current.strip()

        return DEFAULT_MAIN_BRANCH

    def get_merged_branches(self, root: str, main_branch: str) -> List[str]:
        """Get branches fully merged into ``main_branch``, excluding it."""
        output = self.runner.try_run(root, "branch", "--merged", main_branch)
        if output is None:
            logger.debug(f"Could not list branches merged into {main_branch} in {root}")
            return []
        return parse_merged_branches(output, main_branch)

    def get_local_branches(self, root: str) -> List[str]:
        output = self.runner.try_run(root, "branch", "--format=%(refname:short)")
        if not output:
            return []
        return [line.strip() for line in output.split("\n") if line.strip()]

    def get_remote_branches(self, root: str) -> List[str]:
        """Get remote branch names with the remote prefix removed."""
        output = self.runner.try_run(root, "branch", "-r", "--format=%(refname:short)")
        if not output:
            return []

        names: List[str] = []
        for line in output.split("\n"):
            name = strip_remote_prefix(line.strip())
            if name and name not in names:
                names.append(name)
        return names

    def get_repo_root(self, path: str) -> Optional[str]:
        """Get the top-level directory of the working tree containing ``path``."""
        output = self.runner.try_run(path, "rev-parse", "--show-toplevel")
        return output.strip() if output else None

    def fetch(self, path: str) -> None:
        """Fetch all remotes. Raises GitOperationError on failure."""
        self.runner.run(path, "fetch", "--all", "--prune", timeout=self.network_timeout)
        logger.info(f"Fetched remotes for {path}")

    def pull(self, path: str) -> str:
        """Fast-forward the worktree at ``path``. Raises GitOperationError on failure."""
        output = self.runner.run(path, "pull", "--ff-only", timeout=self.network_timeout)
        logger.info(f"Pulled {path}")
        return output
