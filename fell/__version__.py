"""Version information for fell."""

__version__ = "0.1.0"
