"""
tree-buddy - Keep track of git worktrees across many projects
"""

from .__version__ import __version__
from .core import AppService, AppState, OperationState
from .cli import main

__all__ = ["AppService", "AppState", "OperationState", "main", "__version__"]
