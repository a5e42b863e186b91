"""
fell - Run git commands across a fleet of repositories
"""

from .__version__ import __version__
from .core import CommandSummary, Fleet
from .cli.main import main

__all__ = ["CommandSummary", "Fleet", "main", "__version__"]
