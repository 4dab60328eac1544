"""Scope tree model."""

from dataclasses import dataclass, field
from typing import List, Optional

from tree_buddy.models.branch import Branch


@dataclass
class ScopeNode:
    """A segment of a branch name.

    A node can hold a branch and children at the same time, e.g. ``feat``
    next to ``feat/login``.
    """

    name: str
    children: List["ScopeNode"] = field(default_factory=list)
    branch: Optional[Branch] = None

    @property
    def is_leaf(self) -> bool:
        return self.branch is not None
