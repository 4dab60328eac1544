"""Orchestration of the project registry, refresh cycles and worktree deletion."""

import os
import threading
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from tree_buddy.config import Config
from tree_buddy.exceptions import ProjectNotFoundError, ProjectRefreshError
from tree_buddy.logging_config import get_logger
from tree_buddy.models.branch import Branch, CleanupIcon, derive_status
from tree_buddy.models.project import Project, ProjectStatus
from tree_buddy.models.scope import ScopeNode
from tree_buddy.models.worktree import (
    CreateWorktreeOptions,
    DeleteItem,
    DeleteProgress,
    ProgressStatus,
    ScanCache,
    WorktreeCandidate,
)
from tree_buddy.services.git import GitOperations
from tree_buddy.services.platform import LocalPlatform, PlatformAdapter
from tree_buddy.services.scan_service import ScanService, is_cache_stale
from tree_buddy.services.scope import build_tree
from tree_buddy.services.store import ConfigStore
from tree_buddy.settings import Settings

logger = get_logger(__name__)

UPDATABLE_CONFIG_KEYS = ("scope_delim", "scope_enabled")


class OperationState(Enum):
    """What the service is busy with. Only IDLE admits an unforced refresh."""
    IDLE = "idle"
    REFRESHING = "refreshing"
    BULK_OPERATING = "bulk_operating"


@dataclass(frozen=True)
class AppState:
    """Snapshot handed to subscribers."""
    config: Config
    operation: OperationState = OperationState.IDLE

    @property
    def is_refreshing(self) -> bool:
        return self.operation is not OperationState.IDLE


Listener = Callable[[AppState], None]
ProgressCallback = Callable[[DeleteProgress], None]


def new_project_id() -> str:
    return uuid.uuid4().hex[:12]


def normalize_path(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


class AppService:
    """Owns the config, keeps it in sync with git and tells subscribers.

    Every mutation swaps ``Config`` for a new value, so a snapshot returned
    by ``get_state`` never changes under its holder. Refreshes and bulk
    deletes are gated by ``OperationState``; an unforced refresh that finds
    the service busy is dropped, not queued.
    """

    def __init__(
        self,
        platform: Optional[PlatformAdapter] = None,
        store: Optional[ConfigStore] = None,
        git_ops: Optional[GitOperations] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.platform = platform or LocalPlatform()
        self.store = store or ConfigStore(self.settings)
        self.git_ops = git_ops or GitOperations(self.settings)
        self.scan_service = ScanService(self.git_ops)

        self._config = self.store.load()
        self._config_lock = threading.Lock()

        # Operation gate
        self._state_lock = threading.Lock()
        self._refresh_depth = 0
        self._bulk_depth = 0
        self._last_refresh_ts = 0.0

        # One bulk delete at a time, and one writer per repository
        self._bulk_lock = threading.Lock()
        self._root_locks: Dict[str, threading.Lock] = {}
        self._root_locks_guard = threading.Lock()

        self._listeners: List[Listener] = []
        self._notify_lock = threading.RLock()

        logger.info(f"App service initialized with {len(self._config.projects)} projects")

    # State and subscriptions

    @property
    def config(self) -> Config:
        return self._config

    @property
    def operation(self) -> OperationState:
        with self._state_lock:
            return self._operation_locked()

    def _operation_locked(self) -> OperationState:
        if self._bulk_depth:
            return OperationState.BULK_OPERATING
        if self._refresh_depth:
            return OperationState.REFRESHING
        return OperationState.IDLE

    def get_state(self) -> AppState:
        return AppState(config=self._config, operation=self.operation)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and call it once with the current state.

        Returns:
            A callable that unsubscribes the listener
        """
        with self._notify_lock:
            self._listeners.append(listener)
            listener(self.get_state())

        def unsubscribe() -> None:
            with self._notify_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        """Send the current state to every listener.

        Snapshot and delivery happen under one lock, so listeners see states
        in the order the mutations happened.
        """
        with self._notify_lock:
            state = self.get_state()
            for listener in list(self._listeners):
                try:
                    listener(state)
                except Exception:
                    logger.exception("State listener failed")

    def _mutate(self, change: Callable[[Config], Config], persist: bool = True) -> Config:
        """Swap in ``change(current_config)`` and persist it."""
        with self._config_lock:
            config = change(self._config)
            self._config = config
            if persist:
                self.store.save(config)
        return config

    def _lock_for(self, root: str) -> threading.Lock:
        with self._root_locks_guard:
            lock = self._root_locks.get(root)
            if lock is None:
                lock = self._root_locks[root] = threading.Lock()
            return lock

    # Refresh

    def refresh_all_throttled(self, force: bool = False) -> bool:
        """Refresh unless the last refresh happened within the throttle window.

        A throttled call still notifies with the cached state.
        """
        elapsed = time.time() - self._last_refresh_ts
        if not force and elapsed < self.settings.refresh_throttle:
            logger.debug(f"Refresh throttled ({elapsed:.1f}s since last refresh)")
            self.notify()
            return False
        return self.refresh_all(force)

    def refresh_all(self, force: bool = False) -> bool:
        """Rebuild the branches of every project from git.

        Returns:
            False if the refresh was dropped because the service was busy
        """
        with self._state_lock:
            busy = self._operation_locked()
            if busy is not OperationState.IDLE and not force:
                logger.debug(f"Refresh dropped, service is {busy.value}")
                return False
            self._refresh_depth += 1
            self._last_refresh_ts = time.time()

        # Observers see the busy state before any git call starts
        self.notify()

        try:
            snapshot = self._config
            refreshed: Dict[str, Project] = {}
            for project in snapshot.projects:
                refreshed[project.id] = self._refresh_one(project)

            # Projects removed meanwhile stay removed, added ones are kept
            self._mutate(
                lambda cfg: replace(cfg, projects=tuple(refreshed.get(p.id, p) for p in cfg.projects))
            )
            failed = sum(1 for p in refreshed.values() if p.status is ProjectStatus.ERROR)
            logger.info(f"Refreshed {len(refreshed)} projects ({failed} with errors)")
        finally:
            with self._state_lock:
                self._refresh_depth -= 1
            self.notify()
        return True

    def refresh_project(self, project_id: str) -> Optional[Project]:
        """Rebuild the branches of one project. Unknown ids are ignored."""
        project = self._config.get_project(project_id)
        if project is None:
            logger.debug(f"Refresh of unknown project {project_id} ignored")
            return None

        self._mutate(
            lambda cfg: cfg.replace_project(replace(project, status=ProjectStatus.REFRESHING)),
            persist=False,
        )
        self.notify()

        updated = self._refresh_one(project)
        self._mutate(lambda cfg: cfg.replace_project(updated))
        self.notify()
        return updated

    def _refresh_one(self, project: Project) -> Project:
        with self._lock_for(project.root):
            try:
                branches = self._fetch_enhanced_branches(project.root)
            except Exception as e:
                logger.error(f"Error updating project {project.name}: {e}")
                return replace(project, status=ProjectStatus.ERROR, last_updated=time.time())

        return replace(
            project, branches=tuple(branches), status=ProjectStatus.OK, last_updated=time.time()
        )

    def _fetch_enhanced_branches(self, root: str) -> List[Branch]:
        branches = self.git_ops.list_worktrees(root)
        if not branches:
            # Every repository has at least its main checkout
            raise ProjectRefreshError(root, "git reported no worktrees")

        refreshed = self.git_ops.refresh_statuses(branches)
        main_branch = self.git_ops.get_main_branch(root)
        merged = set(self.git_ops.get_merged_branches(root, main_branch))

        return [
            replace(
                branch,
                is_current=branch.is_main,
                derived=derive_status(branch.status, branch.name in merged, branch.locked, branch.is_main),
            )
            for branch in refreshed
        ]

    # Project registry

    def get_candidates(self) -> List[WorktreeCandidate]:
        """Repositories found on disk that are not registered yet.

        The filesystem is only rescanned when the scan cache is stale.
        """
        cache = self.store.load_scan_cache()
        if is_cache_stale(cache, self.settings.scan_cache_ttl):
            scan_root = self.platform.get_documents_path()
            logger.info(f"Scan cache stale or missing, scanning {scan_root}")
            candidates = self.scan_service.scan_for_worktrees(scan_root, self.settings.scan_max_depth)
            cache = ScanCache(ts=time.time(), candidates=tuple(candidates))
            self.store.save_scan_cache(cache)

        config = self._config
        return [c for c in cache.candidates if not config.has_project(c.path)]

    def confirm_add_project(self, path: str, name: Optional[str] = None) -> Project:
        """Register the repository at ``path`` and refresh it.

        Adding a root that is already registered returns the existing project.
        """
        root = normalize_path(path)
        project = Project(
            id=new_project_id(),
            name=name or os.path.basename(root.rstrip(os.sep)) or "project",
            root=root,
            branches=tuple(self.git_ops.list_worktrees(root)),
        )

        config = self._mutate(lambda cfg: cfg if cfg.has_project(root) else cfg.with_project(project))
        registered = config.find_by_root(root)
        if registered.id != project.id:
            logger.info(f"Project at {root} is already registered as {registered.name}")
            return registered

        logger.info(f"Added project {project.name} at {root}")
        return self.refresh_project(project.id) or project

    def remove_project(self, project_id: str) -> None:
        self._mutate(lambda cfg: cfg.without_project(project_id))
        logger.info(f"Removed project {project_id}")
        self.notify()

    def update_config(self, **changes) -> Config:
        """Change display settings (``scope_delim``, ``scope_enabled``)."""
        unknown = set(changes) - set(UPDATABLE_CONFIG_KEYS)
        if unknown:
            raise TypeError(f"update_config() got unexpected keys: {', '.join(sorted(unknown))}")

        config = self._mutate(lambda cfg: replace(cfg, **changes))
        self.notify()
        return config

    # Worktree actions

    def lock_worktree(self, worktree_path: str, reason: Optional[str] = None) -> None:
        self.git_ops.lock_worktree(worktree_path, reason)
        self.refresh_all()

    def unlock_worktree(self, worktree_path: str) -> None:
        self.git_ops.unlock_worktree(worktree_path)
        self.refresh_all()

    def delete_worktrees(
        self, items: Iterable[DeleteItem], on_progress: Optional[ProgressCallback] = None
    ) -> bool:
        """Delete worktrees one after another, then prune and refresh.

        git keeps one administrative area per repository and concurrent
        ``worktree remove`` calls race on it, so items are never processed
        in parallel. Each item reports ``started`` and then ``finished`` or
        ``failed`` through ``on_progress``. A worktree that is already gone
        counts as finished.

        Returns:
            True if no item failed
        """
        items = list(items)
        all_ok = True

        with self._bulk_lock:
            with self._state_lock:
                self._bulk_depth += 1
            self.notify()

            try:
                roots = list(dict.fromkeys(item.root for item in items))

                for item in items:
                    if not self._delete_one(item, on_progress):
                        all_ok = False

                # Clears records of worktrees that were trashed instead of removed
                for root in roots:
                    with self._lock_for(root):
                        success, error_msg = self.git_ops.prune_worktrees(root)
                    if not success:
                        logger.error(f"Failed to prune worktrees in {root}: {error_msg}")
            finally:
                with self._state_lock:
                    self._bulk_depth -= 1

        logger.info(f"Deleted {len(items)} worktrees ({'ok' if all_ok else 'with failures'})")
        self.refresh_all(force=True)
        return all_ok

    def delete_worktree(self, root: str, path: str, force: bool = False, use_trash: bool = False) -> bool:
        return self.delete_worktrees([DeleteItem(root=root, path=path, force=force, use_trash=use_trash)])

    def _delete_one(self, item: DeleteItem, on_progress: Optional[ProgressCallback]) -> bool:
        self._emit(on_progress, item.path, ProgressStatus.STARTED)

        with self._lock_for(item.root):
            try:
                if item.use_trash:
                    success, error_msg = self._trash(item.path)
                else:
                    success, error_msg = self.git_ops.remove_worktree(item.root, item.path, item.force)
            except Exception as e:
                success, error_msg = False, str(e)

        if success:
            self._emit(on_progress, item.path, ProgressStatus.FINISHED)
            return True

        logger.error(f"Failed to remove worktree {item.path}: {error_msg}")
        self._emit(on_progress, item.path, ProgressStatus.FAILED)
        return False

    def _trash(self, path: str) -> Tuple[bool, Optional[str]]:
        try:
            self.platform.trash_item(path)
        except FileNotFoundError:
            logger.info(f"Worktree at {path} is already gone")
            return True, None
        except OSError as e:
            return False, f"Could not move {path} to trash: {e}"
        return True, None

    @staticmethod
    def _emit(on_progress: Optional[ProgressCallback], path: str, status: ProgressStatus) -> None:
        if on_progress is None:
            return
        try:
            on_progress(DeleteProgress(path=path, status=status))
        except Exception:
            logger.exception(f"Progress callback failed for {path}")

    def create_worktree(
        self,
        project_id: str,
        path: str,
        branch: str,
        create_branch: bool = False,
        base_branch: Optional[str] = None,
    ) -> Project:
        """Add a worktree to a project.

        Raises:
            ProjectNotFoundError: unknown project id
            WorktreeExistsError, BranchInUseError, GitOperationError: from git
        """
        project = self._config.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        opts = CreateWorktreeOptions(
            repo_root=project.root,
            path=normalize_path(path),
            branch=branch,
            create_branch=create_branch,
            base_branch=base_branch,
        )
        with self._lock_for(project.root):
            self.git_ops.create_worktree(opts)

        return self.refresh_project(project.id) or project

    def get_remote_branches(self, project_id: str) -> List[str]:
        project = self._config.get_project(project_id)
        if project is None:
            return []
        return self.git_ops.get_remote_branches(project.root)

    def get_local_branches(self, project_id: str) -> List[str]:
        project = self._config.get_project(project_id)
        if project is None:
            return []
        return self.git_ops.get_local_branches(project.root)

    def fetch_worktree(self, worktree_path: str) -> None:
        self.git_ops.fetch(worktree_path)
        self.refresh_all(force=True)

    def pull_worktree(self, worktree_path: str) -> str:
        output = self.git_ops.pull(worktree_path)
        self.refresh_all(force=True)
        return output

    # Read-only views

    def get_scope_tree(self, project_id: str) -> List[ScopeNode]:
        config = self._config
        project = config.get_project(project_id)
        if project is None:
            return []
        return build_tree(project.branches, delim=config.scope_delim, enabled=config.scope_enabled)

    def get_cleanup_candidates(self, project_id: Optional[str] = None) -> List[DeleteItem]:
        """Worktrees whose branch is merged and clean. Locked and main never qualify."""
        config = self._config
        if project_id is None:
            projects = config.projects
        else:
            project = config.get_project(project_id)
            projects = (project,) if project else ()

        return [
            DeleteItem(root=project.root, path=branch.path)
            for project in projects
            for branch in project.branches
            if branch.cleanup_icon_type is CleanupIcon.BROOM and not branch.locked and not branch.is_main
        ]

    # Platform passthroughs

    def open_path(self, path: str) -> None:
        self.platform.open_path(path)

    def show_in_folder(self, path: str) -> None:
        self.platform.show_item_in_folder(path)

    def open_in_terminal(self, path: str) -> None:
        self.platform.open_terminal(path)

    def quit(self) -> None:
        self.platform.quit()
