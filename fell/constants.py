"""Shared constants for fell."""

DEFAULT_BRANCH = "master"
DEFAULT_REMOTE = "origin"

# Catalog discovery
CATALOG_ENV_VAR = "FELL_CATALOG"
CATALOG_SEARCH_PATHS = (
    "~/.config/fell/repos",
    "~/.fell-repos",
)
CATALOG_COMMENT = "#"
GLOB_CHARS = "*?["

# Branch name reported for a detached HEAD
DETACHED_HEAD = "HEAD"

# Symbol constants
SYMBOL_SUCCESS = "✓"
SYMBOL_FAILURE = "✗"
SYMBOL_CHILD = "↳"

# CLI colors (Rich color names)
CLI_COLORS = {
    "branch": "green",
    "path": "yellow",
    "muted": "grey50",
    "success": "green",
    "failure": "red",
    "warning": "yellow",
}
