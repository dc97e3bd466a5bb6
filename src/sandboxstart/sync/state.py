"""Per-list sync state persisted next to the synced files."""

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

STATE_ACTIVE = 1
STATE_DISABLED = 0

# Keys under this prefix are bookkeeping, not list names
MIGRATION_PREFIX = "_migration."


def migration_key(list_name: str) -> str:
    return f"{MIGRATION_PREFIX}{list_name}"


class SyncPolicyState:
    """Reads and writes ``name=state`` lines for synced package lists.

    State 1 marks a list as active (downloaded by sync), 0 marks it as
    disabled or deleted so that sync does not bring it back. Names are
    matched case-insensitively, as on the Windows file systems these lists
    live on. Blank lines, ``#`` comments and malformed lines are ignored.
    """

    def __init__(self, path: Path):
        """Initialize and load the state file if it exists.

        Args:
            path: Location of the state file
        """
        self.path = Path(path)
        self._states: Dict[str, int] = {}
        self._dirty = False
        self.load()

    def load(self) -> None:
        """(Re)load state from disk. An unreadable file yields empty state."""
        self._states = {}
        self._dirty = False
        if not self.path.exists():
            return

        try:
            content = self.path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read sync state {self.path}: {e}")
            return

        for line in content.splitlines():
            parsed = self._parse_line(line)
            if parsed is not None:
                name, state = parsed
                self._states[self._find_key(name) or name] = state

    @staticmethod
    def _parse_line(line: str) -> Optional[Tuple[str, int]]:
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            return None
        name, _, value = line.rpartition("=")
        name = name.strip()
        value = value.strip()
        if not name or value not in ("0", "1"):
            logger.debug(f"Ignoring malformed sync state line: {line!r}")
            return None
        return name, int(value)

    def _find_key(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key in self._states:
            if key.lower() == lowered:
                return key
        return None

    def get(self, name: str) -> Optional[int]:
        """Get the state for a name, or None if never recorded."""
        key = self._find_key(name)
        return self._states[key] if key is not None else None

    def set(self, name: str, state: int) -> None:
        """Record a state. Call save() to persist."""
        if state not in (STATE_ACTIVE, STATE_DISABLED):
            raise ValueError(f"Invalid sync state: {state!r}")
        key = self._find_key(name) or name
        if self._states.get(key) != state:
            self._states[key] = state
            self._dirty = True

    def is_active(self, name: str) -> bool:
        return self.get(name) == STATE_ACTIVE

    def is_disabled(self, name: str) -> bool:
        return self.get(name) == STATE_DISABLED

    def lists(self) -> Iterator[Tuple[str, int]]:
        """Iterate over list entries, skipping migration bookkeeping keys."""
        for name, state in self._states.items():
            if not name.lower().startswith(MIGRATION_PREFIX):
                yield name, state

    def save(self) -> bool:
        """Rewrite the state file if anything changed.

        Returns:
            True if the file is up to date, False if writing failed (logged)
        """
        if not self._dirty:
            return True

        content = "".join(f"{name}={state}\n" for name, state in self._states.items())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write sync state {self.path}: {e}")
            return False

        self._dirty = False
        return True

    def __contains__(self, name: str) -> bool:
        return self._find_key(name) is not None
