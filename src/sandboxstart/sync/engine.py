"""Selective sync of a remote script folder into a user-owned directory.

Two policies apply per file:

- Files matching an always-sync pattern are kept identical to the remote
  copy (after line-ending normalization), unless their first line is the
  override marker.
- All other files are downloaded only when missing locally; an existing
  file is never touched.

Package lists that sync downloaded are tracked in a state file so that
lists removed upstream can be cleaned up, lists the user disabled are not
brought back, and renamed default lists are retired exactly once.
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from sandboxstart.config import SandboxConfig
from sandboxstart.github.client import GitHubClient, GitHubError
from sandboxstart.github.models import FileListingEntry
from sandboxstart.sync.state import (
    STATE_ACTIVE,
    STATE_DISABLED,
    SyncPolicyState,
    migration_key,
)
from sandboxstart.sync.text import has_override_marker, normalize_content

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counts of what a sync did, for diagnostics."""

    downloaded: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    overridden: int = 0
    suppressed: int = 0
    deleted: int = 0
    retired: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return self.downloaded + self.updated + self.deleted + self.retired

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def as_dict(self) -> dict:
        return {
            "downloaded": self.downloaded,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "overridden": self.overridden,
            "suppressed": self.suppressed,
            "deleted": self.deleted,
            "retired": self.retired,
            "failed": self.failed,
        }


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """Case-insensitive glob match of a file name against patterns."""
    lowered = name.lower()
    return any(fnmatch.fnmatchcase(lowered, pattern.lower()) for pattern in patterns)


def list_name(filename: str) -> str:
    """Package list name for a file (its stem)."""
    return Path(filename).stem


def is_plain_filename(name: str) -> bool:
    """True if ``name`` is a single path component that stays inside its directory.

    Backslashes and drive separators are rejected too, since synced folders
    may live on Windows.
    """
    if not name or name in (".", ".."):
        return False
    if "\\" in name or ":" in name:
        return False
    return Path(name).name == name


def _write_atomic(path: Path, data: bytes) -> None:
    temp_path = path.with_name(path.name + ".tmp")
    try:
        temp_path.write_bytes(data)
        temp_path.replace(path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise


class SelectiveSyncEngine:
    """Reconciles a remote file listing against a local directory.

    Never raises from sync(): per-file network and I/O failures are logged,
    counted and skipped, leaving local files as they were.

    Examples:
        >>> engine = SelectiveSyncEngine(GitHubClient(config), config)
        >>> result = engine.sync_from_repo('owner', 'repo', 'scripts', Path('Scripts'))
        >>> result.downloaded
        3
    """

    def __init__(self, client: GitHubClient, config: Optional[SandboxConfig] = None):
        """Initialize sync engine.

        Args:
            client: Client used for listings and downloads
            config: Sync configuration (defaults to the client's)
        """
        self.client = client
        self.config = config or client.config

    def sync(
        self,
        remote_listing: Sequence[Union[FileListingEntry, dict]],
        local_dir: Path,
        always_sync_patterns: Optional[Sequence[str]] = None,
    ) -> SyncResult:
        """Sync remote files into ``local_dir``.

        Args:
            remote_listing: Remote directory entries (decoded or raw API dicts)
            local_dir: Target directory, created if missing
            always_sync_patterns: Globs for force-refreshed files (config default if None)

        Returns:
            SyncResult with per-outcome counts
        """
        result = SyncResult()
        local_dir = Path(local_dir)
        if always_sync_patterns is None:
            always_sync_patterns = self.config.always_sync_patterns

        try:
            local_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create sync directory {local_dir}: {e}")
            result.record_failure(str(e))
            return result

        state = SyncPolicyState(local_dir / self.config.state_filename)
        files = self._remote_files(remote_listing)

        self._record_migrations(local_dir, state)

        for entry in files:
            try:
                self._sync_file(entry, local_dir, always_sync_patterns, state, result)
            except (GitHubError, OSError) as e:
                logger.warning(f"Failed to sync {entry.name}: {e}")
                result.record_failure(f"{entry.name}: {e}")

        remote_names = {entry.name.lower() for entry in files}
        self._retire_renamed_defaults(local_dir, remote_names, state, result)
        if files:
            self._remove_obsolete_lists(local_dir, remote_names, state, result)

        state.save()

        logger.info(
            f"Synced {local_dir}: {result.downloaded} downloaded, {result.updated} updated, "
            f"{result.unchanged} unchanged, {result.skipped} skipped, {result.failed} failed"
        )
        return result

    def sync_from_repo(
        self,
        owner: str,
        repo: str,
        path: str,
        local_dir: Path,
        ref: str = "main",
        always_sync_patterns: Optional[Sequence[str]] = None,
        use_cache: bool = True,
    ) -> SyncResult:
        """List a repository folder and sync it into ``local_dir``.

        A failed listing leaves the local directory untouched and is
        reported through the result's errors.
        """
        try:
            listing = self.client.list_contents(owner, repo, path, ref=ref, use_cache=use_cache)
        except GitHubError as e:
            logger.warning(f"Could not list {owner}/{repo}/{path}: {e}")
            result = SyncResult()
            result.errors.append(str(e))
            return result

        return self.sync(listing, local_dir, always_sync_patterns)

    @staticmethod
    def _remote_files(remote_listing: Sequence[Any]) -> List[FileListingEntry]:
        files = []
        for item in remote_listing:
            entry = item if isinstance(item, FileListingEntry) else FileListingEntry.from_api(item)
            if entry is None:
                continue
            if not entry.is_file:
                logger.debug(f"Skipping non-file entry {entry.name} ({entry.type})")
                continue
            if not is_plain_filename(entry.name):
                logger.warning(f"Skipping remote entry with unsafe name {entry.name!r}")
                continue
            files.append(entry)
        return files

    def _is_managed(self, name: str) -> bool:
        return matches_any(name, self.config.managed_list_patterns)

    def _fetch(self, entry: FileListingEntry) -> bytes:
        if not entry.download_url:
            raise GitHubError(f"No download URL for {entry.name}")
        return normalize_content(entry.name, self.client.download(entry.download_url))

    def _sync_file(
        self,
        entry: FileListingEntry,
        local_dir: Path,
        always_sync_patterns: Sequence[str],
        state: SyncPolicyState,
        result: SyncResult,
    ) -> None:
        local_path = local_dir / entry.name
        managed = self._is_managed(entry.name)

        if managed and state.is_disabled(list_name(entry.name)):
            logger.debug(f"Not restoring disabled list {entry.name}")
            result.suppressed += 1
            return

        if matches_any(entry.name, always_sync_patterns):
            if has_override_marker(local_path):
                logger.info(f"Keeping {entry.name}: marked as custom override")
                result.overridden += 1
                return

            remote = self._fetch(entry)
            if local_path.exists():
                local = normalize_content(entry.name, local_path.read_bytes())
                if local == remote:
                    result.unchanged += 1
                else:
                    _write_atomic(local_path, remote)
                    logger.info(f"Updated {entry.name}")
                    result.updated += 1
            else:
                _write_atomic(local_path, remote)
                logger.info(f"Downloaded {entry.name}")
                result.downloaded += 1
        else:
            if local_path.exists():
                result.skipped += 1
                return
            _write_atomic(local_path, self._fetch(entry))
            logger.info(f"Downloaded {entry.name}")
            result.downloaded += 1

        if managed:
            state.set(list_name(entry.name), STATE_ACTIVE)

    def _record_migrations(self, local_dir: Path, state: SyncPolicyState) -> None:
        """Remember, once, which renamed default lists existed locally."""
        for old_name in self.config.renamed_defaults:
            key = migration_key(list_name(old_name))
            if key in state:
                continue
            existed = (local_dir / old_name).exists()
            state.set(key, STATE_ACTIVE if existed else STATE_DISABLED)

    def _retire_renamed_defaults(
        self,
        local_dir: Path,
        remote_names: set,
        state: SyncPolicyState,
        result: SyncResult,
    ) -> None:
        """Delete old default lists once their replacement is published."""
        for old_name, new_name in self.config.renamed_defaults.items():
            key = migration_key(list_name(old_name))
            if state.get(key) != STATE_ACTIVE or new_name.lower() not in remote_names:
                continue

            old_path = local_dir / old_name
            try:
                if has_override_marker(old_path):
                    logger.info(f"Keeping {old_name}: marked as custom override")
                elif old_path.exists():
                    old_path.unlink()
                    logger.info(f"Retired {old_name} (replaced by {new_name})")
                    result.retired += 1
                    state.set(list_name(old_name), STATE_DISABLED)
            except OSError as e:
                logger.warning(f"Failed to retire {old_name}: {e}")
                result.record_failure(f"{old_name}: {e}")
                continue

            state.set(key, STATE_DISABLED)

    def _remove_obsolete_lists(
        self,
        local_dir: Path,
        remote_names: set,
        state: SyncPolicyState,
        result: SyncResult,
    ) -> None:
        """Delete synced lists that are no longer published upstream."""
        remote_lists = {list_name(name).lower() for name in remote_names if self._is_managed(name)}

        for name, list_state in list(state.lists()):
            if list_state != STATE_ACTIVE or name.lower() in remote_lists:
                continue

            for local_path in self._local_list_files(local_dir, name):
                try:
                    if has_override_marker(local_path):
                        logger.info(f"Keeping {local_path.name}: marked as custom override")
                        break
                    local_path.unlink()
                    logger.info(f"Removed obsolete list {local_path.name}")
                    result.deleted += 1
                except OSError as e:
                    logger.warning(f"Failed to remove {local_path.name}: {e}")
                    result.record_failure(f"{local_path.name}: {e}")
                    break
            else:
                state.set(name, STATE_DISABLED)

    def _local_list_files(self, local_dir: Path, name: str) -> List[Path]:
        lowered = name.lower()
        try:
            candidates = sorted(local_dir.iterdir())
        except OSError as e:
            logger.warning(f"Cannot scan {local_dir}: {e}")
            return []
        return [
            path
            for path in candidates
            if path.is_file()
            and path.stem.lower() == lowered
            and self._is_managed(path.name)
        ]
