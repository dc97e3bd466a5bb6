"""Main CLI entry point for sandboxstart.

Provides command-line access to release lookup, script sync and the
response cache.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sandboxstart.cache import CacheStore
from sandboxstart.config import SandboxConfig
from sandboxstart.github import GitHubClient, GitHubError
from sandboxstart.sync import SelectiveSyncEngine

# Global console for Rich output
console = Console()


def split_repo(value: str) -> Tuple[str, str]:
    """Split an ``owner/repo`` argument.

    Raises:
        click.BadParameter: If the value is not of the form owner/repo
    """
    parts = value.strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise click.BadParameter(f"Expected OWNER/REPO, got {value!r}")
    return parts[0], parts[1]


def build_config(config_path: Optional[str], cache_dir: Optional[str]) -> SandboxConfig:
    """Load configuration from a file or the environment, then apply overrides."""
    if config_path:
        config = SandboxConfig.load(Path(config_path))
    else:
        config = SandboxConfig.from_env()

    if cache_dir:
        config.cache_dir = Path(cache_dir).expanduser()
    return config


def format_timestamp(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value[:16]


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to a JSON config file (default: environment variables)",
)
@click.option("--cache-dir", type=click.Path(file_okay=False), help="Response cache directory")
@click.option("--verbose", "-v", is_flag=True, help="Show log output")
@click.pass_context
def cli(ctx, config_path, cache_dir, verbose):
    """sandboxstart CLI - GitHub releases, script sync and response cache.

    Set GITHUB_TOKEN to raise the API rate limit.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    ctx.ensure_object(dict)
    ctx.obj["config"] = build_config(config_path, cache_dir)


# ==================== API Commands ====================


@cli.command("rate-limit")
@click.pass_context
def rate_limit(ctx):
    """Show the remaining GitHub API quota.

    Example:
        sandboxstart rate-limit
    """
    try:
        client = GitHubClient(ctx.obj["config"])
        status = client.get_rate_limit()

        color = "red" if status.exhausted else "green"
        console.print(
            f"[{color}]{status.remaining}[/{color}] of {status.limit} requests remaining"
        )
        if status.reset_at:
            console.print(f"  Resets: {format_timestamp(status.reset_at)} UTC")
        if client.config.get_token() is None:
            console.print("  [yellow]Unauthenticated (set GITHUB_TOKEN for a higher limit)[/yellow]")

    except GitHubError as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("releases")
@click.argument("repository")
@click.option("--per-page", "-n", default=10, show_default=True, help="Number of releases")
@click.option("--latest", is_flag=True, help="Only show the latest stable release")
@click.option("--no-cache", is_flag=True, help="Bypass the response cache")
@click.pass_context
def releases(ctx, repository, per_page, latest, no_cache):
    """List releases of OWNER/REPO.

    Falls back to cached data or the release feed when rate limited.

    Example:
        sandboxstart releases microsoft/winget-cli --latest
    """
    owner, repo = split_repo(repository)
    try:
        client = GitHubClient(ctx.obj["config"])
        use_cache = ctx.obj["config"].cache_enabled and not no_cache

        if latest:
            release = client.get_latest_release(owner, repo, use_cache=use_cache)
            found = [release] if release else []
        else:
            found = client.get_releases(owner, repo, per_page=per_page, use_cache=use_cache)

        if not found:
            console.print("[yellow]No releases found[/yellow]")
            return

        table = Table(title=f"Releases of {owner}/{repo} ({len(found)})")
        table.add_column("Tag", style="cyan", no_wrap=True)
        table.add_column("Published", style="blue")
        table.add_column("Pre-release", style="magenta")
        table.add_column("Assets", justify="right", style="green")
        table.add_column("Source", style="white")

        for release in found:
            table.add_row(
                release.tag_name,
                format_timestamp(release.published_at),
                "yes" if release.prerelease else "",
                str(len(release.assets)),
                release.source,
            )

        console.print(table)

    except GitHubError as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("sync")
@click.argument("repository")
@click.argument("path")
@click.argument("dest", type=click.Path(file_okay=False))
@click.option("--ref", default="main", show_default=True, help="Branch, tag or commit")
@click.option(
    "--always",
    "-a",
    multiple=True,
    help="Always-sync glob pattern (can be used multiple times; default from config)",
)
@click.option("--no-cache", is_flag=True, help="Bypass the response cache for the listing")
@click.pass_context
def sync(ctx, repository, path, dest, ref, always, no_cache):
    """Sync the folder PATH of OWNER/REPO into DEST.

    Files matching an always-sync pattern are refreshed unless their first
    line is "# CUSTOM OVERRIDE"; other files are only downloaded if missing.

    Example:
        sandboxstart sync owner/repo scripts ./Scripts -a "Std-*.ps1"
    """
    owner, repo = split_repo(repository)
    config = ctx.obj["config"]

    client = GitHubClient(config)
    engine = SelectiveSyncEngine(client, config)
    result = engine.sync_from_repo(
        owner,
        repo,
        path,
        Path(dest),
        ref=ref,
        always_sync_patterns=list(always) or None,
        use_cache=config.cache_enabled and not no_cache,
    )

    table = Table(title=f"Sync {owner}/{repo}/{path.strip('/')} → {dest}")
    table.add_column("Outcome", style="cyan")
    table.add_column("Files", justify="right", style="green")
    for outcome, count in result.as_dict().items():
        table.add_row(outcome, str(count))
    console.print(table)

    for error in result.errors:
        console.print(f"[red]✗[/red] {error}", style="red")

    if result.errors and not result.changed and not result.unchanged:
        sys.exit(1)


# ==================== Cache Commands ====================


@cli.group()
@click.pass_context
def cache(ctx):
    """Inspect or clear the response cache."""
    pass


@cache.command("status")
@click.pass_context
def cache_status(ctx):
    """Show cached responses and their expiry.

    Example:
        sandboxstart cache status
    """
    store = CacheStore(ctx.obj["config"].cache_dir)
    entries = store.entries()

    if not entries:
        console.print(f"[yellow]Cache is empty[/yellow] ({store.cache_dir})")
        return

    now = store.clock()
    table = Table(title=f"Cached responses ({len(entries)})")
    table.add_column("Key", style="cyan")
    table.add_column("Cached", style="blue")
    table.add_column("TTL (min)", justify="right")
    table.add_column("Expires", style="blue")
    table.add_column("Source", style="magenta")
    table.add_column("State")

    for key, entry in sorted(entries.items()):
        expired = entry.expires_at is None or now > entry.expires_at
        table.add_row(
            key,
            format_timestamp(entry.timestamp),
            str(entry.ttl_minutes),
            format_timestamp(entry.expires_at),
            entry.source,
            "[red]expired[/red]" if expired else "[green]fresh[/green]",
        )

    console.print(table)
    stats = store.stats()
    console.print(f"  Size: {stats['total_size_bytes']:,} bytes in {stats['cache_dir']}")


@cache.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def cache_clear(ctx, yes):
    """Delete every cached response.

    Example:
        sandboxstart cache clear -y
    """
    store = CacheStore(ctx.obj["config"].cache_dir)

    if not yes and not click.confirm(f"Delete cache at {store.cache_dir}?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    try:
        store.clear()
    except OSError as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)

    console.print("[green]✓[/green] Cache cleared")


if __name__ == "__main__":
    cli()
