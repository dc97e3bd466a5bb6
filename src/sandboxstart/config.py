"""Configuration for the GitHub client, response cache and script sync."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

DEFAULT_CACHE_DIR = Path.home() / ".sandboxstart" / "cache"


@dataclass
class SandboxConfig:
    """Configuration shared by the client, cache store and sync engine.

    Attributes:
        api_url: Base URL of a GitHub-compatible REST API
        web_url: Base URL of the web host serving ``releases.atom`` feeds
        cache_dir: Directory holding cached API responses
        cache_enabled: Whether API responses are cached by default
        default_ttl_minutes: TTL applied when a caller does not give one
        request_timeout: Fixed timeout in seconds for every HTTP request
        token_env_var: Environment variable holding an optional bearer token
        user_agent: Client identifier sent with every request
        always_sync_patterns: Glob patterns of files kept in lockstep with remote
        managed_list_patterns: Glob patterns of package lists tracked in sync state
        renamed_defaults: Old default list filename -> replacement filename
        state_filename: Name of the sync state file inside the synced directory
    """

    api_url: str = "https://api.github.com"
    web_url: str = "https://github.com"
    cache_dir: Path = DEFAULT_CACHE_DIR
    cache_enabled: bool = True
    default_ttl_minutes: int = 60
    request_timeout: float = 5.0
    token_env_var: str = "GITHUB_TOKEN"
    user_agent: str = "sandboxstart"
    always_sync_patterns: List[str] = field(default_factory=lambda: ["Std-*.ps1"])
    managed_list_patterns: List[str] = field(default_factory=lambda: ["*.txt"])
    renamed_defaults: Dict[str, str] = field(default_factory=dict)
    state_filename: str = ".sync_state"

    def __post_init__(self):
        """Normalize paths and URLs."""
        if self.cache_dir is None:
            self.cache_dir = DEFAULT_CACHE_DIR
        self.cache_dir = Path(self.cache_dir).expanduser()
        self.api_url = self.api_url.rstrip("/")
        self.web_url = self.web_url.rstrip("/")

    def get_token(self) -> Optional[str]:
        """Return the bearer token from the environment, if any.

        A missing or empty variable is not an error; requests are then sent
        anonymously at the lower rate ceiling.
        """
        token = os.environ.get(self.token_env_var, "").strip()
        return token or None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "SandboxConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            SandboxConfig instance (defaults if the file does not exist)
        """
        if config_path is None:
            config_path = DEFAULT_CACHE_DIR.parent / "config.json"
        config_path = Path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to a JSON file.

        Args:
            config_path: Path to config file. If None, uses default location.
        """
        if config_path is None:
            config_path = DEFAULT_CACHE_DIR.parent / "config.json"
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "api_url": self.api_url,
            "web_url": self.web_url,
            "cache_dir": str(self.cache_dir),
            "cache_enabled": self.cache_enabled,
            "default_ttl_minutes": self.default_ttl_minutes,
            "request_timeout": self.request_timeout,
            "token_env_var": self.token_env_var,
            "user_agent": self.user_agent,
            "always_sync_patterns": list(self.always_sync_patterns),
            "managed_list_patterns": list(self.managed_list_patterns),
            "renamed_defaults": dict(self.renamed_defaults),
            "state_filename": self.state_filename,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls) -> "SandboxConfig":
        """Create configuration from environment variables.

        Environment variables:
            SANDBOXSTART_CACHE_DIR: Cache directory path
            SANDBOXSTART_CACHE_TTL: Default TTL in minutes
            SANDBOXSTART_TIMEOUT: Request timeout in seconds
            SANDBOXSTART_API_URL: REST API base URL

        Returns:
            SandboxConfig instance
        """
        config = cls()

        if os.getenv("SANDBOXSTART_CACHE_DIR"):
            config.cache_dir = Path(os.getenv("SANDBOXSTART_CACHE_DIR")).expanduser()

        if os.getenv("SANDBOXSTART_CACHE_TTL"):
            config.default_ttl_minutes = int(os.getenv("SANDBOXSTART_CACHE_TTL"))

        if os.getenv("SANDBOXSTART_TIMEOUT"):
            config.request_timeout = float(os.getenv("SANDBOXSTART_TIMEOUT"))

        if os.getenv("SANDBOXSTART_API_URL"):
            config.api_url = os.getenv("SANDBOXSTART_API_URL").rstrip("/")

        return config
