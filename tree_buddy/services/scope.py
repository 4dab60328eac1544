"""Group branch names into a tree of scopes.

``feat/auth/login`` split on ``/`` gives the scopes ``feat`` → ``auth`` and
the leaf ``login``. Sibling order follows the order branches were given in.
"""

from typing import Iterable, List, Optional

from tree_buddy.constants import DEFAULT_SCOPE_DELIM
from tree_buddy.models.branch import Branch
from tree_buddy.models.scope import ScopeNode


def parse_scopes(name: str, delim: str) -> List[str]:
    """Split a branch name on ``delim``, dropping empty segments."""
    return [segment for segment in name.split(delim) if segment]


def build_tree(
    branches: Iterable[Branch], delim: str = DEFAULT_SCOPE_DELIM, enabled: bool = True
) -> List[ScopeNode]:
    """Build a scope tree from branches.

    With scoping disabled every branch is its own root leaf.
    """
    if not enabled:
        return [ScopeNode(name=b.name, branch=b) for b in branches]

    roots: List[ScopeNode] = []
    for branch in branches:
        parts = parse_scopes(branch.name, delim)
        if parts:
            _insert(roots, parts, branch)
    return roots


def _insert(nodes: List[ScopeNode], parts: List[str], branch: Branch) -> None:
    node = None
    for part in parts:
        node = next((n for n in nodes if n.name == part), None)
        if node is None:
            node = ScopeNode(name=part)
            nodes.append(node)
        nodes = node.children
    node.branch = branch


def flatten(nodes: Iterable[ScopeNode]) -> List[Branch]:
    """Branches of the tree in depth-first, pre-order."""
    result: List[Branch] = []
    for node in nodes:
        if node.branch is not None:
            result.append(node.branch)
        result.extend(flatten(node.children))
    return result


def count_branches(nodes: Iterable[ScopeNode]) -> int:
    return sum((1 if n.branch is not None else 0) + count_branches(n.children) for n in nodes)


def find_node(nodes: List[ScopeNode], path: str, delim: str = DEFAULT_SCOPE_DELIM) -> Optional[ScopeNode]:
    """Find the node at ``path`` (e.g. ``feat/auth``), or None."""
    parts = parse_scopes(path, delim)
    node = None
    for part in parts:
        node = next((n for n in nodes if n.name == part), None)
        if node is None:
            return None
        nodes = node.children
    return node


def get_path(node: ScopeNode, delim: str = DEFAULT_SCOPE_DELIM) -> str:
    """Display path of a node.

    Nodes do not know their parents, so for a leaf this is the full branch
    name and otherwise the segment name.
    """
    if node.branch is not None:
        return delim.join(parse_scopes(node.branch.name, delim)) or node.name
    return node.name
