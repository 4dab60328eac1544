"""Tests for AppService orchestration"""
import threading
from dataclasses import replace
from unittest.mock import Mock

import pytest

from tree_buddy.core import AppService, OperationState
from tree_buddy.exceptions import GitOperationError, ProjectNotFoundError
from tree_buddy.models.branch import CleanupIcon
from tree_buddy.models.project import ProjectStatus
from tree_buddy.models.worktree import CreateWorktreeOptions
from tree_buddy.services.store import ConfigStore

from conftest import make_branches


@pytest.fixture
def app(mock_platform, store, mock_git_ops, settings):
    return AppService(platform=mock_platform, store=store, git_ops=mock_git_ops, settings=settings)


@pytest.fixture
def project(app, temp_dir):
    return app.confirm_add_project(str(temp_dir / "repo"))


def without_ts(branches):
    return [replace(b, status=replace(b.status, ts=0.0)) for b in branches]


class TestSubscriptions:
    """Test state delivery to listeners."""

    def test_subscribe_delivers_current_state(self, app):
        listener = Mock()
        app.subscribe(listener)

        listener.assert_called_once()
        assert listener.call_args[0][0].operation is OperationState.IDLE

    def test_unsubscribe(self, app):
        listener = Mock()
        unsubscribe = app.subscribe(listener)
        unsubscribe()
        app.notify()

        assert listener.call_count == 1

    def test_failing_listener_does_not_stop_delivery(self, app):
        bad = Mock(side_effect=[None, RuntimeError("boom")])
        good = Mock()
        app.subscribe(bad)
        app.subscribe(good)

        app.notify()

        assert good.call_count == 2

    def test_refresh_notifies_busy_then_idle(self, app, project):
        states = []
        app.subscribe(lambda state: states.append(state.operation))
        states.clear()

        app.refresh_all()

        assert states[0] is OperationState.REFRESHING
        assert states[-1] is OperationState.IDLE


class TestRefreshAll:
    """Test the refresh cycle."""

    def test_branches_are_rebuilt_with_derived_status(self, app, project):
        app.refresh_all()
        branches = {b.name: b for b in app.get_state().config.projects[0].branches}

        assert branches["main"].is_main is True
        assert branches["main"].is_current is True
        assert branches["feature/x"].merged is True
        assert branches["feature/x"].cleanup_icon_type is CleanupIcon.BROOM
        assert branches["feature/y"].merged is False
        assert branches["feature/y"].show_cleanup_icon is False
        assert branches["main"].cleanup_icon_type is None

    def test_unchanged_git_state_gives_identical_branches(self, app, project):
        """Test that two refreshes differ only in status timestamps."""
        app.refresh_all()
        first = app.get_state().config.projects[0].branches
        app.refresh_all()
        second = app.get_state().config.projects[0].branches

        assert without_ts(first) == without_ts(second)
        assert all(b.status.ts > 0 for b in second)

    def test_concurrent_refresh_runs_once(self, app, project, mock_git_ops):
        """Test that an unforced refresh while one is running is dropped."""
        started = threading.Event()
        release = threading.Event()

        def blocking_list(root):
            started.set()
            assert release.wait(5)
            return make_branches(root)

        mock_git_ops.list_worktrees.reset_mock()
        mock_git_ops.list_worktrees.side_effect = blocking_list

        results = []
        worker = threading.Thread(target=lambda: results.append(app.refresh_all()))
        worker.start()
        assert started.wait(5)

        assert app.get_state().is_refreshing is True
        assert app.refresh_all() is False

        release.set()
        worker.join(5)

        assert results == [True]
        assert mock_git_ops.list_worktrees.call_count == 1
        assert app.get_state().operation is OperationState.IDLE

    def test_project_removed_during_refresh_stays_removed(self, app, project, mock_git_ops):
        started = threading.Event()
        release = threading.Event()

        def blocking_list(root):
            started.set()
            assert release.wait(5)
            return make_branches(root)

        mock_git_ops.list_worktrees.side_effect = blocking_list
        worker = threading.Thread(target=app.refresh_all)
        worker.start()
        assert started.wait(5)

        app.remove_project(project.id)
        release.set()
        worker.join(5)

        assert app.get_state().config.projects == ()

    def test_no_worktrees_marks_project_error(self, app, project, mock_git_ops):
        mock_git_ops.list_worktrees.side_effect = None
        mock_git_ops.list_worktrees.return_value = []

        assert app.refresh_all() is True
        assert app.get_state().config.projects[0].status is ProjectStatus.ERROR

    def test_error_is_cleared_by_next_successful_refresh(self, app, project, mock_git_ops):
        mock_git_ops.get_main_branch.side_effect = GitOperationError("symbolic-ref", project.root, "boom")
        app.refresh_all()
        assert app.get_state().config.projects[0].status is ProjectStatus.ERROR

        mock_git_ops.get_main_branch.side_effect = None
        app.refresh_all()
        assert app.get_state().config.projects[0].status is ProjectStatus.OK

    def test_one_failing_project_does_not_stop_others(self, app, temp_dir, mock_git_ops):
        good = app.confirm_add_project(str(temp_dir / "good"))
        bad = app.confirm_add_project(str(temp_dir / "bad"))
        mock_git_ops.list_worktrees.side_effect = lambda root: [] if root == bad.root else make_branches(root)

        app.refresh_all()

        statuses = {p.id: p.status for p in app.get_state().config.projects}
        assert statuses == {good.id: ProjectStatus.OK, bad.id: ProjectStatus.ERROR}

    def test_refresh_is_persisted(self, app, project, settings):
        app.refresh_all()
        loaded = ConfigStore(settings).load()

        assert [b.name for b in loaded.projects[0].branches] == ["main", "feature/x", "feature/y"]
        assert all(b.derived is None for b in loaded.projects[0].branches)


class TestThrottle:
    """Test throttled refreshes."""

    def test_second_refresh_within_window_is_skipped(self, app, project, mock_git_ops):
        mock_git_ops.list_worktrees.reset_mock()

        assert app.refresh_all_throttled() is True
        listener = Mock()
        app.subscribe(listener)
        assert app.refresh_all_throttled() is False

        assert mock_git_ops.list_worktrees.call_count == 1
        # The throttled call still pushes the cached state
        assert listener.call_count == 2

    def test_force_bypasses_throttle(self, app, project, mock_git_ops):
        mock_git_ops.list_worktrees.reset_mock()

        app.refresh_all_throttled()
        assert app.refresh_all_throttled(force=True) is True
        assert mock_git_ops.list_worktrees.call_count == 2


class TestProjects:
    """Test project registration and settings updates."""

    def test_add_project(self, app, temp_dir, settings):
        project = app.confirm_add_project(str(temp_dir / "repo"), name="My Repo")

        assert project.name == "My Repo"
        assert project.root == str(temp_dir / "repo")
        assert project.status is ProjectStatus.OK
        assert len(project.id) == 12
        assert ConfigStore(settings).load().projects[0].id == project.id

    def test_add_normalizes_path(self, app, temp_dir):
        project = app.confirm_add_project(f"{temp_dir}/sub/../repo/")
        assert project.root == str(temp_dir / "repo")
        assert project.name == "repo"

    def test_add_same_root_twice_returns_existing(self, app, temp_dir):
        first = app.confirm_add_project(str(temp_dir / "repo"))
        second = app.confirm_add_project(str(temp_dir / "repo"))

        assert second.id == first.id
        assert len(app.get_state().config.projects) == 1

    def test_remove_project(self, app, project, settings):
        app.remove_project(project.id)

        assert app.get_state().config.projects == ()
        assert ConfigStore(settings).load().projects == ()

    def test_refresh_unknown_project(self, app):
        assert app.refresh_project("nope") is None

    def test_update_config(self, app, settings):
        config = app.update_config(scope_delim="-", scope_enabled=False)

        assert (config.scope_delim, config.scope_enabled) == ("-", False)
        assert ConfigStore(settings).load().scope_delim == "-"

    def test_update_config_rejects_unknown_keys(self, app):
        with pytest.raises(TypeError):
            app.update_config(projects=())

    def test_config_survives_restart(self, mock_platform, store, mock_git_ops, settings, project):
        restarted = AppService(platform=mock_platform, store=store, git_ops=mock_git_ops, settings=settings)
        assert restarted.get_state().config.projects[0].id == project.id


class TestWorktreeActions:
    """Test create, lock and network actions."""

    def test_create_worktree(self, app, project, mock_git_ops, temp_dir):
        app.create_worktree(project.id, str(temp_dir / "wt-new"), "feature/new", create_branch=True, base_branch="main")

        mock_git_ops.create_worktree.assert_called_once_with(CreateWorktreeOptions(
            repo_root=project.root,
            path=str(temp_dir / "wt-new"),
            branch="feature/new",
            create_branch=True,
            base_branch="main",
        ))

    def test_create_worktree_unknown_project(self, app):
        with pytest.raises(ProjectNotFoundError):
            app.create_worktree("nope", "/tmp/x", "x")

    def test_create_worktree_errors_propagate(self, app, project, mock_git_ops):
        mock_git_ops.create_worktree.side_effect = GitOperationError("worktree add", project.root, "boom")
        with pytest.raises(GitOperationError):
            app.create_worktree(project.id, "/tmp/x", "x")

    def test_lock_refreshes(self, app, project, mock_git_ops):
        mock_git_ops.list_worktrees.reset_mock()
        app.lock_worktree("/wt", reason="usb")

        mock_git_ops.lock_worktree.assert_called_once_with("/wt", "usb")
        assert mock_git_ops.list_worktrees.call_count == 1

    def test_unlock_refreshes(self, app, project, mock_git_ops):
        mock_git_ops.list_worktrees.reset_mock()
        app.unlock_worktree("/wt")

        mock_git_ops.unlock_worktree.assert_called_once_with("/wt")
        assert mock_git_ops.list_worktrees.call_count == 1

    def test_pull_returns_output(self, app, project, mock_git_ops):
        assert app.pull_worktree("/wt") == "Already up to date."
        mock_git_ops.pull.assert_called_once_with("/wt")

    def test_fetch(self, app, project, mock_git_ops):
        app.fetch_worktree("/wt")
        mock_git_ops.fetch.assert_called_once_with("/wt")

    def test_branch_listing(self, app, project):
        assert app.get_local_branches(project.id) == ["main", "feature/x", "feature/y"]
        assert app.get_remote_branches(project.id) == ["main"]
        assert app.get_remote_branches("nope") == []
        assert app.get_local_branches("nope") == []


class TestViews:
    """Test scope tree and cleanup candidate views."""

    def test_scope_tree(self, app, project):
        tree = app.get_scope_tree(project.id)
        assert [n.name for n in tree] == ["main", "feature"]
        assert [n.name for n in tree[1].children] == ["x", "y"]

    def test_scope_tree_follows_config(self, app, project):
        app.update_config(scope_enabled=False)
        assert [n.name for n in app.get_scope_tree(project.id)] == ["main", "feature/x", "feature/y"]

    def test_cleanup_candidates(self, app, project):
        items = app.get_cleanup_candidates()

        assert [i.path for i in items] == [f"{project.root}-x"]
        assert items[0].root == project.root
        assert app.get_cleanup_candidates(project.id) == items
        assert app.get_cleanup_candidates("nope") == []

    def test_locked_branch_is_not_a_candidate(self, app, project, mock_git_ops, temp_dir):
        def locked_branches(root):
            return [replace(b, locked=True) if b.name == "feature/x" else b for b in make_branches(root)]

        mock_git_ops.list_worktrees.side_effect = locked_branches
        app.refresh_all()

        assert app.get_cleanup_candidates() == []


class TestPlatformPassthrough:
    def test_passthroughs(self, app, mock_platform):
        app.open_path("/a")
        app.show_in_folder("/b")
        app.open_in_terminal("/c")
        app.quit()

        mock_platform.open_path.assert_called_once_with("/a")
        mock_platform.show_item_in_folder.assert_called_once_with("/b")
        mock_platform.open_terminal.assert_called_once_with("/c")
        mock_platform.quit.assert_called_once()
