"""Command-line interface for tree-buddy"""

import sys
from typing import List, Optional

from rich.console import Console
from rich.progress import Progress

from tree_buddy.args import parse_args
from tree_buddy.core import AppService
from tree_buddy.core.app_service import normalize_path
from tree_buddy.exceptions import ProjectNotFoundError, TreeBuddyError
from tree_buddy.logging_config import setup_logging
from tree_buddy.models.project import Project
from tree_buddy.models.worktree import DeleteItem, DeleteProgress, ProgressStatus
from tree_buddy.services.display_service import DisplayService
from tree_buddy.settings import Settings

console = Console()


def resolve_project(app: AppService, key: str) -> Project:
    """Find a project by id, name or root path."""
    config = app.get_state().config
    project = config.get_project(key) or config.find_by_root(normalize_path(key))
    if project is None:
        project = next((p for p in config.projects if p.name == key), None)
    if project is None:
        raise ProjectNotFoundError(key)
    return project


def resolve_worktree_root(app: AppService, path: str) -> str:
    """Root of the registered project that owns the worktree at ``path``."""
    path = normalize_path(path)
    for project in app.get_state().config.projects:
        if project.find_branch(path) is not None:
            return project.root
    raise TreeBuddyError(f"No registered project has a worktree at {path}")


def run_deletion(app: AppService, items: List[DeleteItem]) -> bool:
    """Delete worktrees behind a progress bar."""
    with Progress(console=console) as progress:
        task = progress.add_task("Deleting worktrees...", total=len(items))

        def on_progress(event: DeleteProgress) -> None:
            if event.status is ProgressStatus.FINISHED:
                progress.advance(task)
            elif event.status is ProgressStatus.FAILED:
                progress.advance(task)
                progress.console.print(f"[red]✗ Failed to delete {event.path}[/red]")

        return app.delete_worktrees(items, on_progress=on_progress)


def cmd_list(app: AppService, args, display: DisplayService) -> int:
    if args.refresh:
        app.refresh_all_throttled()
    display.display_projects(app.get_state().config, show_legend=args.legend)
    return 0


def cmd_refresh(app: AppService, args, display: DisplayService) -> int:
    with console.status("[bold blue]Refreshing worktrees...", spinner="dots"):
        app.refresh_all_throttled(force=args.force)
    display.display_projects(app.get_state().config)
    return 0


def cmd_scan(app: AppService, args, display: DisplayService) -> int:
    if args.rescan:
        app.store.clear_scan_cache()
    with console.status("[bold blue]Looking for repositories...", spinner="dots"):
        candidates = app.get_candidates()
    display.display_candidates(candidates)
    return 0


def cmd_add(app: AppService, args, display: DisplayService) -> int:
    project = app.confirm_add_project(args.path, name=args.name)
    console.print(f"[green]✓ Registered {project.name}[/green] ({project.id})")
    display.console.print(display.project_tree(project, app.get_state().config))
    return 0


def cmd_remove_project(app: AppService, args, display: DisplayService) -> int:
    project = resolve_project(app, args.project)
    app.remove_project(project.id)
    console.print(f"[green]✓ Removed {project.name}[/green]")
    return 0


def cmd_new(app: AppService, args, display: DisplayService) -> int:
    project = resolve_project(app, args.project)
    project = app.create_worktree(
        project.id,
        args.path,
        args.branch,
        create_branch=args.create_branch,
        base_branch=args.base_branch,
    )
    console.print(f"[green]✓ Created worktree for {args.branch}[/green]")
    display.console.print(display.project_tree(project, app.get_state().config))
    return 0


def cmd_rm(app: AppService, args, display: DisplayService) -> int:
    items = [
        DeleteItem(
            root=resolve_worktree_root(app, path),
            path=normalize_path(path),
            force=args.force,
            use_trash=args.trash,
        )
        for path in args.paths
    ]
    return 0 if run_deletion(app, items) else 1


def cmd_lock(app: AppService, args, display: DisplayService) -> int:
    app.lock_worktree(normalize_path(args.path), reason=args.reason)
    console.print(f"[green]✓ Locked {args.path}[/green]")
    return 0


def cmd_unlock(app: AppService, args, display: DisplayService) -> int:
    app.unlock_worktree(normalize_path(args.path))
    console.print(f"[green]✓ Unlocked {args.path}[/green]")
    return 0


def cmd_fetch(app: AppService, args, display: DisplayService) -> int:
    with console.status(f"[bold blue]Fetching {args.path}...", spinner="dots"):
        app.fetch_worktree(normalize_path(args.path))
    console.print("[green]✓ Fetched[/green]")
    return 0


def cmd_pull(app: AppService, args, display: DisplayService) -> int:
    with console.status(f"[bold blue]Pulling {args.path}...", spinner="dots"):
        output = app.pull_worktree(normalize_path(args.path))
    if output:
        console.print(output)
    return 0


def cmd_cleanup(app: AppService, args, display: DisplayService) -> int:
    project_id = resolve_project(app, args.project).id if args.project else None
    app.refresh_all_throttled()
    items = app.get_cleanup_candidates(project_id)
    display.display_cleanup_candidates(items)

    if not items or args.dry_run:
        return 0

    if not args.force:
        response = console.input("\nProceed with deletion? [y/N] ")
        if response.strip().lower() != "y":
            console.print("Cleanup cancelled")
            return 0

    if args.trash:
        items = [DeleteItem(root=i.root, path=i.path, force=i.force, use_trash=True) for i in items]
    return 0 if run_deletion(app, items) else 1


def cmd_config(app: AppService, args, display: DisplayService) -> int:
    changes = {}
    if args.scope_delim is not None:
        changes["scope_delim"] = args.scope_delim
    if args.scope_enabled is not None:
        changes["scope_enabled"] = args.scope_enabled

    config = app.update_config(**changes) if changes else app.get_state().config
    console.print("[yellow]Configuration:[/yellow]")
    console.print(f"  scope_delim: {config.scope_delim}")
    console.print(f"  scope_enabled: {config.scope_enabled}")
    console.print(f"  projects: {len(config.projects)}")
    return 0


COMMANDS = {
    "list": cmd_list,
    "refresh": cmd_refresh,
    "scan": cmd_scan,
    "add": cmd_add,
    "remove-project": cmd_remove_project,
    "new": cmd_new,
    "rm": cmd_rm,
    "lock": cmd_lock,
    "unlock": cmd_unlock,
    "fetch": cmd_fetch,
    "pull": cmd_pull,
    "cleanup": cmd_cleanup,
    "config": cmd_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)

        # Setup logging before creating the app service
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        settings = Settings.from_env()
        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Settings:[/yellow]")
            for key, value in settings.to_dict().items():
                console.print(f"  {key}: {value}")

        app = AppService(settings=settings)
        display = DisplayService(verbose=parsed_args.verbose)
        return COMMANDS[parsed_args.command](app, parsed_args, display)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
