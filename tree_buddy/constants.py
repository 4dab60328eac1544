"""Shared constants for tree-buddy."""

# Hard timeout for a single git query, in seconds
GIT_TIMEOUT = 5.0

# fetch/pull talk to the network and get a longer leash
NETWORK_TIMEOUT = 60.0

# Maximum number of worktrees whose status is queried at the same time
STATUS_CONCURRENCY = 5

# Minimum number of seconds between two unforced refreshes
REFRESH_THROTTLE = 30.0

# Scan results are reused for this many seconds
SCAN_CACHE_TTL = 5 * 60.0

# How deep below the documents folder the scanner looks for repositories
SCAN_MAX_DEPTH = 3

# Fallback chain for the main branch when origin/HEAD is not set
MAIN_BRANCH_CANDIDATES = ("main", "master", "develop")
DEFAULT_MAIN_BRANCH = "main"

DEFAULT_SCOPE_DELIM = "/"

# stderr fragments git prints when the worktree is already gone
WORKTREE_GONE_MARKERS = ("is not a working tree", "does not exist")

# Directory names the scanner never descends into
SCAN_SKIP_DIRS = ("node_modules",)

APP_NAME = "tree-buddy"


# Symbols used by the CLI
SYMBOL_MAIN = "●"
SYMBOL_LOCKED = "🔒"
SYMBOL_AHEAD = "↑"
SYMBOL_BEHIND = "↓"
SYMBOL_DIRTY = "✎"
SYMBOL_BROOM = "🧹"


# Rich colours for the sync stoplight
SYNC_COLORS = {
    "green": "green",
    "yellow": "yellow",
    "red": "red",
}


LEGEND_TEXT = """
Legend:
● = Sync status (green clean, yellow dirty, red behind upstream)
↑ = Unpushed commits      ↓ = Commits to pull
✎ = Uncommitted changes   🧹 = Merged, safe to clean up
🔒 = Locked worktree
"""
