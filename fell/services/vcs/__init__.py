"""VCS backend capability and its GitPython implementation."""

from .backend import VcsBackend
from .git_backend import GitBackend
from .transport import TransportConfig

__all__ = [
    "VcsBackend",
    "GitBackend",
    "TransportConfig",
]
