"""Rich rendering of projects, scope trees and scan results"""
from typing import Iterable, List, Optional

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from tree_buddy.config import Config
from tree_buddy.constants import LEGEND_TEXT
from tree_buddy.formatters import format_branch_label, format_last_updated
from tree_buddy.logging_config import get_logger
from tree_buddy.models.project import Project, ProjectStatus
from tree_buddy.models.scope import ScopeNode
from tree_buddy.models.worktree import DeleteItem, WorktreeCandidate
from tree_buddy.services.scope import build_tree

console = Console()
logger = get_logger(__name__)

PROJECT_STATUS_STYLES = {
    ProjectStatus.OK: "green",
    ProjectStatus.ERROR: "red",
    ProjectStatus.REFRESHING: "yellow",
}


class DisplayService:
    def __init__(self, verbose: bool = False, console_: Optional[Console] = None):
        self.verbose = verbose
        self.console = console_ or console

    def project_tree(self, project: Project, config: Config) -> Tree:
        """Build the Rich tree for one project, grouped by scope."""
        style = PROJECT_STATUS_STYLES[project.status]
        header = f"[bold]{project.name}[/bold] [{style}]{project.status.value}[/{style}]"
        if self.verbose:
            header += f" [dim]{project.root} · {format_last_updated(project.last_updated)}[/dim]"
        tree = Tree(header)
        nodes = build_tree(project.branches, delim=config.scope_delim, enabled=config.scope_enabled)
        self._add_nodes(tree, nodes)
        return tree

    def _add_nodes(self, parent: Tree, nodes: Iterable[ScopeNode]) -> None:
        for node in nodes:
            if node.branch is not None:
                label = format_branch_label(node.branch, label=node.name)
                if self.verbose:
                    label += f" [dim]{node.branch.path}[/dim]"
            else:
                label = f"[cyan]{node.name}[/cyan]"
            child = parent.add(label)
            self._add_nodes(child, node.children)

    def display_projects(self, config: Config, show_legend: bool = False) -> None:
        if not config.projects:
            self.console.print("[yellow]No projects registered. Use 'tree-buddy add <path>'.[/yellow]")
            return

        for project in config.projects:
            self.console.print(self.project_tree(project, config))

        if show_legend:
            self.console.print(LEGEND_TEXT)

    def display_candidates(self, candidates: List[WorktreeCandidate]) -> None:
        if not candidates:
            self.console.print("No new repositories with worktrees found.")
            return

        table = Table()
        table.add_column("Name")
        table.add_column("Path")
        table.add_column("Worktrees", justify="right")
        for candidate in candidates:
            table.add_row(candidate.name, candidate.path, str(candidate.branch_count))
        self.console.print(table)

    def display_cleanup_candidates(self, items: List[DeleteItem]) -> None:
        if not items:
            self.console.print("Nothing to clean up.")
            return

        self.console.print("\nWorktrees that would be deleted:")
        for item in items:
            self.console.print(f"  • {item.path}")
