"""sandboxstart: GitHub-backed script sync and release lookup for Windows Sandbox test sessions."""

__version__ = "0.1.0"

from sandboxstart.cache import CacheStore
from sandboxstart.config import SandboxConfig
from sandboxstart.github import GitHubClient
from sandboxstart.sync import SelectiveSyncEngine

__all__ = [
    "CacheStore",
    "GitHubClient",
    "SandboxConfig",
    "SelectiveSyncEngine",
    "__version__",
]
