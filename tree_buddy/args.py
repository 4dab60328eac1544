"""Command-line argument parsing for tree-buddy."""

import argparse
from typing import List, Optional

from tree_buddy.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tree-buddy",
        description="Keep track of git worktrees across many projects",
        epilog="Settings can be overridden with TREE_BUDDY_* environment variables, "
        "e.g. TREE_BUDDY_GIT_TIMEOUT=10 or TREE_BUDDY_CONFIG_DIR=/tmp/tree-buddy",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"tree-buddy {__version__}")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    list_cmd = commands.add_parser("list", help="Show projects and their worktrees (default)")
    list_cmd.add_argument("--refresh", action="store_true", help="Refresh from git before showing")
    list_cmd.add_argument("--legend", action="store_true", help="Explain the symbols")

    refresh = commands.add_parser("refresh", help="Refresh every project from git")
    refresh.add_argument(
        "--force", action="store_true", help="Refresh even if the last refresh was recent"
    )

    scan = commands.add_parser("scan", help="Find repositories with worktrees that are not registered")
    scan.add_argument("--rescan", action="store_true", help="Ignore the scan cache")

    add = commands.add_parser("add", help="Register a repository")
    add.add_argument("path", help="Path of the repository")
    add.add_argument("--name", help="Display name (default: directory name)")

    remove = commands.add_parser("remove-project", help="Forget a project (files are not touched)")
    remove.add_argument("project", help="Project id, name or root path")

    new = commands.add_parser("new", help="Create a worktree")
    new.add_argument("project", help="Project id, name or root path")
    new.add_argument("path", help="Where to create the worktree")
    new.add_argument("branch", help="Branch to check out")
    new.add_argument("-b", "--create-branch", action="store_true", help="Create a new branch")
    new.add_argument("--base", dest="base_branch", help="Start point for a new branch")

    rm = commands.add_parser("rm", help="Delete worktrees")
    rm.add_argument("paths", nargs="+", help="Worktree paths")
    rm.add_argument("--force", action="store_true", help="Delete even with uncommitted changes")
    rm.add_argument("--trash", action="store_true", help="Move to the trash instead of deleting")

    lock = commands.add_parser("lock", help="Lock a worktree")
    lock.add_argument("path", help="Worktree path")
    lock.add_argument("--reason", help="Why the worktree is locked")

    unlock = commands.add_parser("unlock", help="Unlock a worktree")
    unlock.add_argument("path", help="Worktree path")

    fetch = commands.add_parser("fetch", help="Fetch all remotes of a worktree")
    fetch.add_argument("path", help="Worktree path")

    pull = commands.add_parser("pull", help="Fast-forward a worktree from its upstream")
    pull.add_argument("path", help="Worktree path")

    cleanup = commands.add_parser("cleanup", help="Delete worktrees whose branch is merged")
    cleanup.add_argument("project", nargs="?", help="Limit to one project")
    cleanup.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview mode - show what would be deleted without actually deleting",
    )
    cleanup.add_argument("--force", action="store_true", help="Skip confirmations")
    cleanup.add_argument("--trash", action="store_true", help="Move to the trash instead of deleting")

    config = commands.add_parser("config", help="Show or change display settings")
    config.add_argument("--delim", dest="scope_delim", help="Branch scope delimiter")
    scope = config.add_mutually_exclusive_group()
    scope.add_argument(
        "--scope", dest="scope_enabled", action="store_true", default=None, help="Group branches by scope"
    )
    scope.add_argument(
        "--no-scope", dest="scope_enabled", action="store_false", help="Show branches as a flat list"
    )
    config.set_defaults(scope_enabled=None)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    args = build_parser().parse_args(argv)
    if args.command is None:
        args.command = "list"
        args.refresh = False
        args.legend = False
    return args
