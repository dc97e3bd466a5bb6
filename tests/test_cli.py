"""Tests for CLI commands.

These tests verify:
- Release listing and rate-limit output
- Sync summary and exit codes
- Cache status and clearing
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from rich.console import Console

from sandboxstart.cache import CacheStore
from sandboxstart.cli.main import cli, split_repo
from sandboxstart.github import HttpError, RateLimitStatus, Release
from sandboxstart.sync import SyncResult


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep table cells on one line so output assertions are stable."""
    monkeypatch.setattr("sandboxstart.cli.main.console", Console(width=200))


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


def invoke(runner, cache_dir, *args, **kwargs):
    return runner.invoke(cli, ["--cache-dir", str(cache_dir), *args], **kwargs)


class TestHelpers:
    def test_split_repo(self):
        assert split_repo("microsoft/winget-cli") == ("microsoft", "winget-cli")

    @pytest.mark.parametrize("value", ["winget-cli", "a/b/c", "/b", "a/"])
    def test_split_repo_invalid(self, value):
        from click import BadParameter

        with pytest.raises(BadParameter):
            split_repo(value)


class TestReleases:
    """Test the releases command."""

    @patch("sandboxstart.cli.main.GitHubClient")
    def test_list_releases(self, mock_client, runner, cache_dir):
        mock_client.return_value.get_releases.return_value = [
            Release(tag_name="v1.7.10514", published_at="2026-01-15T10:00:00Z"),
            Release(tag_name="v1.8.1", prerelease=True, source="atom"),
        ]

        result = invoke(runner, cache_dir, "releases", "microsoft/winget-cli", "-n", "2")

        assert result.exit_code == 0
        assert "v1.7.10514" in result.output
        assert "atom" in result.output
        mock_client.return_value.get_releases.assert_called_once_with(
            "microsoft", "winget-cli", per_page=2, use_cache=True
        )

    @patch("sandboxstart.cli.main.GitHubClient")
    def test_latest_no_cache(self, mock_client, runner, cache_dir):
        mock_client.return_value.get_latest_release.return_value = Release(tag_name="v2.0.0")

        result = invoke(runner, cache_dir, "releases", "o/r", "--latest", "--no-cache")

        assert result.exit_code == 0
        assert "v2.0.0" in result.output
        mock_client.return_value.get_latest_release.assert_called_once_with(
            "o", "r", use_cache=False
        )

    @patch("sandboxstart.cli.main.GitHubClient")
    def test_no_releases(self, mock_client, runner, cache_dir):
        mock_client.return_value.get_releases.return_value = []

        result = invoke(runner, cache_dir, "releases", "o/r")

        assert result.exit_code == 0
        assert "No releases found" in result.output

    @patch("sandboxstart.cli.main.GitHubClient")
    def test_error_exits_nonzero(self, mock_client, runner, cache_dir):
        mock_client.return_value.get_releases.side_effect = HttpError("HTTP 404", "url", 404)

        result = invoke(runner, cache_dir, "releases", "o/r")

        assert result.exit_code == 1
        assert "HTTP 404" in result.output

    def test_invalid_repository_argument(self, runner, cache_dir):
        result = invoke(runner, cache_dir, "releases", "not-a-repo")

        assert result.exit_code != 0


class TestRateLimit:
    @patch("sandboxstart.cli.main.GitHubClient")
    def test_rate_limit(self, mock_client, runner, cache_dir, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mock_client.return_value.get_rate_limit.return_value = RateLimitStatus(
            limit=60,
            remaining=12,
            reset_at=datetime(2026, 1, 1, 13, 0, tzinfo=timezone.utc),
        )
        mock_client.return_value.config.get_token.return_value = None

        result = invoke(runner, cache_dir, "rate-limit")

        assert result.exit_code == 0
        assert "12" in result.output
        assert "of 60" in result.output
        assert "Unauthenticated" in result.output


class TestSync:
    """Test the sync command."""

    @patch("sandboxstart.cli.main.SelectiveSyncEngine")
    @patch("sandboxstart.cli.main.GitHubClient")
    def test_sync_summary(self, mock_client, mock_engine, runner, cache_dir, tmp_path):
        mock_engine.return_value.sync_from_repo.return_value = SyncResult(downloaded=2, skipped=1)
        dest = tmp_path / "Scripts"

        result = invoke(
            runner, cache_dir, "sync", "o/r", "scripts", str(dest), "-a", "Std-*.ps1", "--ref", "dev"
        )

        assert result.exit_code == 0
        assert "downloaded" in result.output
        args, kwargs = mock_engine.return_value.sync_from_repo.call_args
        assert args[:3] == ("o", "r", "scripts")
        assert kwargs["ref"] == "dev"
        assert kwargs["always_sync_patterns"] == ["Std-*.ps1"]

    @patch("sandboxstart.cli.main.SelectiveSyncEngine")
    @patch("sandboxstart.cli.main.GitHubClient")
    def test_sync_default_patterns(self, mock_client, mock_engine, runner, cache_dir, tmp_path):
        mock_engine.return_value.sync_from_repo.return_value = SyncResult()

        invoke(runner, cache_dir, "sync", "o/r", "scripts", str(tmp_path / "d"))

        kwargs = mock_engine.return_value.sync_from_repo.call_args.kwargs
        assert kwargs["always_sync_patterns"] is None

    @patch("sandboxstart.cli.main.SelectiveSyncEngine")
    @patch("sandboxstart.cli.main.GitHubClient")
    def test_sync_listing_failure(self, mock_client, mock_engine, runner, cache_dir, tmp_path):
        failed = SyncResult()
        failed.errors.append("GET contents returned HTTP 403")
        mock_engine.return_value.sync_from_repo.return_value = failed

        result = invoke(runner, cache_dir, "sync", "o/r", "scripts", str(tmp_path / "d"))

        assert result.exit_code == 1
        assert "HTTP 403" in result.output


class TestCacheCommands:
    """Test cache status and clear."""

    def test_status_empty(self, runner, cache_dir):
        result = invoke(runner, cache_dir, "cache", "status")

        assert result.exit_code == 0
        assert "Cache is empty" in result.output

    def test_status_lists_entries(self, runner, cache_dir):
        store = CacheStore(cache_dir)
        store.put("repos_o_r_releases", [], ttl_minutes=60)
        store.put("repos_o_r_feed", [], ttl_minutes=60, source="atom")

        result = invoke(runner, cache_dir, "cache", "status")

        assert result.exit_code == 0
        assert "repos_o_r_releases" in result.output
        assert "fresh" in result.output

    def test_clear_with_confirmation(self, runner, cache_dir):
        CacheStore(cache_dir).put("key", {"v": 1}, ttl_minutes=5)

        result = invoke(runner, cache_dir, "cache", "clear", input="y\n")

        assert result.exit_code == 0
        assert "Cache cleared" in result.output
        assert not cache_dir.exists()

    def test_clear_cancelled(self, runner, cache_dir):
        CacheStore(cache_dir).put("key", {"v": 1}, ttl_minutes=5)

        result = invoke(runner, cache_dir, "cache", "clear", input="n\n")

        assert "Cancelled" in result.output
        assert cache_dir.exists()

    def test_clear_missing_cache(self, runner, cache_dir):
        result = invoke(runner, cache_dir, "cache", "clear", "-y")

        assert result.exit_code == 0
