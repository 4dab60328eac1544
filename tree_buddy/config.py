"""User configuration for tree-buddy"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from tree_buddy.constants import DEFAULT_SCOPE_DELIM
from tree_buddy.exceptions import ConfigError
from tree_buddy.models.project import Project


@dataclass(frozen=True)
class Config:
    """The project registry and display preferences.

    Config values are never edited in place: every helper below returns a
    new Config, so a reader holding a reference keeps a consistent snapshot.
    """

    scope_delim: str = DEFAULT_SCOPE_DELIM
    scope_enabled: bool = True
    projects: Tuple[Project, ...] = ()

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_scope_delim()
        if not isinstance(self.projects, tuple):
            object.__setattr__(self, "projects", tuple(self.projects))

    def _validate_scope_delim(self):
        """Validate scope_delim is a non-empty string."""
        if not isinstance(self.scope_delim, str) or not self.scope_delim:
            raise ConfigError(f"scope_delim must be a non-empty string, got {self.scope_delim!r}")

    def get_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def find_by_root(self, root: str) -> Optional[Project]:
        return next((p for p in self.projects if p.root == root), None)

    def has_project(self, root: str) -> bool:
        return self.find_by_root(root) is not None

    def with_project(self, project: Project) -> "Config":
        return replace(self, projects=self.projects + (project,))

    def without_project(self, project_id: str) -> "Config":
        return replace(self, projects=tuple(p for p in self.projects if p.id != project_id))

    def replace_project(self, project: Project) -> "Config":
        return replace(
            self, projects=tuple(project if p.id == project.id else p for p in self.projects)
        )

    def with_scope(self, enabled: bool, delim: Optional[str] = None) -> "Config":
        return replace(self, scope_enabled=enabled, scope_delim=delim or self.scope_delim)

    def to_dict(self) -> dict:
        return {
            "scope_delim": self.scope_delim,
            "scope_enabled": self.scope_enabled,
            "projects": [p.to_dict() for p in self.projects],
        }

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        return cls(
            scope_delim=config_dict.get("scope_delim") or DEFAULT_SCOPE_DELIM,
            scope_enabled=bool(config_dict.get("scope_enabled", True)),
            projects=tuple(Project.from_dict(p) for p in config_dict.get("projects") or []),
        )
