"""Tests for configuration loading."""

from pathlib import Path

from sandboxstart.config import SandboxConfig


class TestSandboxConfig:
    """Test configuration defaults and persistence."""

    def test_defaults(self):
        """Test that defaults match the documented values."""
        config = SandboxConfig()

        assert config.api_url == "https://api.github.com"
        assert config.request_timeout == 5.0
        assert config.always_sync_patterns == ["Std-*.ps1"]
        assert isinstance(config.cache_dir, Path)

    def test_string_cache_dir_converted(self, tmp_path):
        """Test that string paths become Paths and URL slashes are trimmed."""
        config = SandboxConfig(cache_dir=str(tmp_path / "c"), api_url="https://x.example/api/")

        assert config.cache_dir == tmp_path / "c"
        assert config.api_url == "https://x.example/api"

    def test_save_and_load(self, tmp_path):
        """Test that a saved config loads back equal."""
        path = tmp_path / "config.json"
        config = SandboxConfig(
            cache_dir=tmp_path / "cache",
            default_ttl_minutes=15,
            renamed_defaults={"Default.txt": "Default-Apps.txt"},
        )

        config.save(path)
        loaded = SandboxConfig.load(path)

        assert loaded == config

    def test_load_missing_file_gives_defaults(self, tmp_path):
        """Test that a missing config file gives defaults."""
        assert SandboxConfig.load(tmp_path / "absent.json") == SandboxConfig()

    def test_load_ignores_unknown_keys(self, tmp_path):
        """Test that unknown keys in the file are ignored."""
        path = tmp_path / "config.json"
        path.write_text('{"request_timeout": 2, "theme": "dark"}')

        assert SandboxConfig.load(path).request_timeout == 2

    def test_from_env(self, tmp_path, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("SANDBOXSTART_CACHE_DIR", str(tmp_path))
        monkeypatch.setenv("SANDBOXSTART_CACHE_TTL", "5")
        monkeypatch.setenv("SANDBOXSTART_TIMEOUT", "3.5")
        monkeypatch.setenv("SANDBOXSTART_API_URL", "https://ghe.example.com/api/v3/")

        config = SandboxConfig.from_env()

        assert config.cache_dir == tmp_path
        assert config.default_ttl_minutes == 5
        assert config.request_timeout == 3.5
        assert config.api_url == "https://ghe.example.com/api/v3"

    def test_token_optional(self, monkeypatch):
        """Test that blank or unset tokens are treated as absent."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        assert SandboxConfig().get_token() is None

        monkeypatch.setenv("GITHUB_TOKEN", "  ")
        assert SandboxConfig().get_token() is None

        monkeypatch.setenv("GITHUB_TOKEN", "abc")
        assert SandboxConfig().get_token() == "abc"

    def test_custom_token_variable(self, monkeypatch):
        """Test that the token variable name is configurable."""
        monkeypatch.setenv("MY_TOKEN", "xyz")

        assert SandboxConfig(token_env_var="MY_TOKEN").get_token() == "xyz"
