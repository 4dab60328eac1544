"""Pytest fixtures for tree-buddy tests"""
import logging
import tempfile
import time
from pathlib import Path
from unittest.mock import Mock
import pytest
import git

from tree_buddy.models.branch import Branch, GitStatus
from tree_buddy.services.git.operations import GitOperations
from tree_buddy.services.store import ConfigStore
from tree_buddy.settings import Settings


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # git reports resolved paths (/private/var on macOS)
        yield Path(tmpdir).resolve()


@pytest.fixture
def settings(temp_dir):
    """Settings that keep config and cache inside the temp dir."""
    return Settings(config_dir=temp_dir / "config", cache_dir=temp_dir / "cache")


@pytest.fixture
def store(settings):
    return ConfigStore(settings)


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def repo_with_worktrees(git_repo, temp_dir):
    """A repository with two linked worktrees.

    ``feature/merged`` points at main's tip, ``feature/work`` has a commit
    of its own.
    """
    repo = git_repo

    merged_path = temp_dir / "wt-merged"
    repo.git.worktree('add', '-b', 'feature/merged', str(merged_path))

    work_path = temp_dir / "wt-work"
    repo.git.worktree('add', '-b', 'feature/work', str(work_path))
    work_repo = git.Repo(work_path)
    (work_path / "work.txt").write_text("Work in progress\n")
    work_repo.index.add(["work.txt"])
    work_repo.index.commit("Add work")
    work_repo.close()

    yield repo


@pytest.fixture
def worktree_paths(temp_dir):
    """Paths of the worktrees created by ``repo_with_worktrees``."""
    return {
        "main": str(temp_dir / "test_repo"),
        "feature/merged": str(temp_dir / "wt-merged"),
        "feature/work": str(temp_dir / "wt-work"),
    }


def make_branches(root: str):
    """Branches a mocked ``list_worktrees`` reports for ``root``."""
    return [
        Branch(name="main", path=root, is_main=True, is_current=True),
        Branch(name="feature/x", path=f"{root}-x"),
        Branch(name="feature/y", path=f"{root}-y"),
    ]


def fresh_statuses(branches):
    return [b.with_status(GitStatus(ts=time.time())) for b in branches]


@pytest.fixture
def mock_git_ops():
    """A GitOperations double reporting three clean worktrees per root.

    ``feature/x`` is merged into main, ``feature/y`` is not.
    """
    ops = Mock(spec=GitOperations)
    ops.list_worktrees = Mock(side_effect=make_branches)
    ops.refresh_statuses = Mock(side_effect=fresh_statuses)
    ops.get_main_branch = Mock(return_value="main")
    ops.get_merged_branches = Mock(return_value=["feature/x"])
    ops.remove_worktree = Mock(return_value=(True, None))
    ops.prune_worktrees = Mock(return_value=(True, None))
    ops.get_local_branches = Mock(return_value=["main", "feature/x", "feature/y"])
    ops.get_remote_branches = Mock(return_value=["main"])
    ops.pull = Mock(return_value="Already up to date.")
    return ops


@pytest.fixture
def mock_platform(temp_dir):
    """A PlatformAdapter double whose documents folder is the temp dir."""
    platform = Mock()
    platform.get_documents_path = Mock(return_value=str(temp_dir))
    return platform


@pytest.fixture
def restore_root_logger():
    """Undo the handler changes setup_logging makes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
