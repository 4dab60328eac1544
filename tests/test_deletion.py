"""Tests for bulk worktree deletion"""
import threading
from unittest.mock import Mock

import pytest

from tree_buddy.core import AppService, OperationState
from tree_buddy.models.worktree import DeleteItem, ProgressStatus
from tree_buddy.services.git.operations import GitOperations
from tree_buddy.services.platform import LocalPlatform


@pytest.fixture
def app(mock_platform, store, mock_git_ops, settings):
    return AppService(platform=mock_platform, store=store, git_ops=mock_git_ops, settings=settings)


def recorder():
    events = []
    return events, lambda event: events.append((event.path, event.status))


class TestDeleteWorktreesReal:
    """Test deletion against a real repository."""

    def test_middle_item_already_gone(self, repo_with_worktrees, worktree_paths, temp_dir, store, settings):
        """Test that an already-removed worktree is a soft success."""
        app = AppService(
            platform=LocalPlatform(trash_dir=temp_dir / "trash"),
            store=store,
            git_ops=GitOperations(settings),
            settings=settings,
        )
        project = app.confirm_add_project(worktree_paths["main"])
        assert len(project.branches) == 3

        missing = str(temp_dir / "already-gone")
        paths = [worktree_paths["feature/merged"], missing, worktree_paths["feature/work"]]
        events, on_progress = recorder()

        result = app.delete_worktrees(
            [DeleteItem(root=project.root, path=p, force=True) for p in paths], on_progress=on_progress
        )

        assert result is True
        assert events == [
            (paths[0], ProgressStatus.STARTED),
            (paths[0], ProgressStatus.FINISHED),
            (paths[1], ProgressStatus.STARTED),
            (paths[1], ProgressStatus.FINISHED),
            (paths[2], ProgressStatus.STARTED),
            (paths[2], ProgressStatus.FINISHED),
        ]
        branches = app.get_state().config.projects[0].branches
        assert [b.name for b in branches] == ["main"]

    def test_trash_then_prune(self, repo_with_worktrees, worktree_paths, temp_dir, store, settings):
        """Test that trashed worktrees disappear from git after the prune."""
        trash = temp_dir / "trash"
        app = AppService(
            platform=LocalPlatform(trash_dir=trash, freedesktop=True),
            store=store,
            git_ops=GitOperations(settings),
            settings=settings,
        )
        project = app.confirm_add_project(worktree_paths["main"])

        result = app.delete_worktree(project.root, worktree_paths["feature/merged"], use_trash=True)

        assert result is True
        assert (trash / "files" / "wt-merged").is_dir()
        names = [b.name for b in app.get_state().config.projects[0].branches]
        assert names == ["main", "feature/work"]


class TestDeleteWorktreesMocked:
    """Test sequencing and bookkeeping with a git double."""

    def test_prune_once_per_root(self, app, mock_git_ops):
        items = [
            DeleteItem(root="/r1", path="/r1-a"),
            DeleteItem(root="/r2", path="/r2-a"),
            DeleteItem(root="/r1", path="/r1-b"),
        ]

        assert app.delete_worktrees(items) is True

        assert [c.args[0] for c in mock_git_ops.prune_worktrees.call_args_list] == ["/r1", "/r2"]
        assert [c.args[1] for c in mock_git_ops.remove_worktree.call_args_list] == ["/r1-a", "/r2-a", "/r1-b"]

    def test_failure_is_reported_and_others_continue(self, app, mock_git_ops):
        mock_git_ops.remove_worktree.side_effect = [(True, None), (False, "dirty"), (True, None)]
        events, on_progress = recorder()

        result = app.delete_worktrees([DeleteItem(root="/r", path=f"/w{i}") for i in range(3)], on_progress)

        assert result is False
        assert [status for _, status in events] == [
            ProgressStatus.STARTED, ProgressStatus.FINISHED,
            ProgressStatus.STARTED, ProgressStatus.FAILED,
            ProgressStatus.STARTED, ProgressStatus.FINISHED,
        ]

    def test_unexpected_exception_is_a_failure(self, app, mock_git_ops):
        mock_git_ops.remove_worktree.side_effect = RuntimeError("boom")
        events, on_progress = recorder()

        assert app.delete_worktrees([DeleteItem(root="/r", path="/w")], on_progress) is False
        assert events[-1] == ("/w", ProgressStatus.FAILED)

    def test_trash_missing_path_is_soft_success(self, app, mock_platform, mock_git_ops):
        mock_platform.trash_item.side_effect = FileNotFoundError("/w")
        events, on_progress = recorder()

        assert app.delete_worktrees([DeleteItem(root="/r", path="/w", use_trash=True)], on_progress) is True
        assert events[-1] == ("/w", ProgressStatus.FINISHED)
        mock_git_ops.remove_worktree.assert_not_called()

    def test_trash_failure(self, app, mock_platform):
        mock_platform.trash_item.side_effect = PermissionError("denied")
        assert app.delete_worktrees([DeleteItem(root="/r", path="/w", use_trash=True)]) is False

    def test_prune_failure_is_not_fatal(self, app, mock_git_ops):
        mock_git_ops.prune_worktrees.return_value = (False, "locked index")
        assert app.delete_worktrees([DeleteItem(root="/r", path="/w")]) is True

    def test_callback_exception_does_not_abort(self, app, mock_git_ops):
        on_progress = Mock(side_effect=RuntimeError("ui went away"))

        assert app.delete_worktrees([DeleteItem(root="/r", path="/a"), DeleteItem(root="/r", path="/b")], on_progress)
        assert mock_git_ops.remove_worktree.call_count == 2

    def test_state_is_bulk_then_idle(self, app):
        states = []
        app.subscribe(lambda state: states.append(state.operation))

        app.delete_worktrees([DeleteItem(root="/r", path="/w")])

        assert OperationState.BULK_OPERATING in states
        assert states[-1] is OperationState.IDLE

    def test_refresh_dropped_during_bulk(self, app, mock_git_ops):
        """Test that an unforced refresh is dropped while deleting."""
        inside = threading.Event()
        release = threading.Event()

        def slow_remove(root, path, force):
            inside.set()
            assert release.wait(5)
            return True, None

        mock_git_ops.remove_worktree.side_effect = slow_remove
        worker = threading.Thread(target=app.delete_worktrees, args=([DeleteItem(root="/r", path="/w")],))
        worker.start()
        assert inside.wait(5)

        assert app.get_state().operation is OperationState.BULK_OPERATING
        assert app.refresh_all() is False

        release.set()
        worker.join(5)
        assert app.get_state().operation is OperationState.IDLE

    def test_refreshes_after_deletion(self, app, mock_git_ops, temp_dir):
        app.confirm_add_project(str(temp_dir / "repo"))
        mock_git_ops.list_worktrees.reset_mock()

        app.delete_worktrees([DeleteItem(root=str(temp_dir / "repo"), path="/w")])

        assert mock_git_ops.list_worktrees.call_count == 1
