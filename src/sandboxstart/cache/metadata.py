"""Cache metadata index management."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from sandboxstart.cache.validation import compute_expires_at, parse_timestamp

logger = logging.getLogger(__name__)

METADATA_FILE = "cache_metadata.json"

SOURCE_API = "api"
SOURCE_ATOM = "atom"
VALID_SOURCES = (SOURCE_API, SOURCE_ATOM)


@dataclass
class CacheEntry:
    """Metadata for one cached response.

    ``expires_at`` is None when the index row carries no parseable expiry;
    such entries are always treated as expired.
    """

    key: str
    timestamp: Optional[datetime]
    ttl_minutes: int
    expires_at: Optional[datetime]
    source: str = SOURCE_API

    @classmethod
    def from_index(cls, key: str, row: Any) -> "CacheEntry":
        """Decode an index row, defaulting missing or malformed fields."""
        if not isinstance(row, dict):
            row = {}

        ttl = row.get("ttl_minutes")
        if not isinstance(ttl, int) or isinstance(ttl, bool):
            ttl = 0

        source = row.get("source")
        if source not in VALID_SOURCES:
            source = SOURCE_API

        return cls(
            key=key,
            timestamp=parse_timestamp(row.get("timestamp")),
            ttl_minutes=ttl,
            expires_at=parse_timestamp(row.get("expires_at")),
            source=source,
        )

    def to_index(self) -> Dict[str, Any]:
        """Encode as an index row."""
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "ttl_minutes": self.ttl_minutes,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "source": self.source,
        }


class CacheMetadata:
    """Manages the cache metadata index.

    The index (cache_metadata.json) is a single JSON object keyed by cache
    key. It is loaded in full, mutated and rewritten in full on every
    update. There is no locking: two processes writing at once race and
    the last writer wins.
    """

    def __init__(self, cache_dir: Path):
        """Initialize cache metadata manager.

        Args:
            cache_dir: Directory where the index is stored
        """
        self.cache_dir = Path(cache_dir)
        self.meta_path = self.cache_dir / METADATA_FILE

    def load(self) -> Dict[str, Any]:
        """Load the raw index, returning an empty dict if absent or corrupted."""
        if not self.meta_path.exists():
            return {}

        try:
            with open(self.meta_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable cache index {self.meta_path}: {e}")
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get the metadata for a key.

        Args:
            key: Cache key

        Returns:
            CacheEntry or None if the key is not in the index
        """
        data = self.load()
        if key not in data:
            return None
        return CacheEntry.from_index(key, data[key])

    def get_all_entries(self) -> Dict[str, CacheEntry]:
        """Get metadata for every indexed key."""
        return {key: CacheEntry.from_index(key, row) for key, row in self.load().items()}

    def set_entry(
        self, key: str, timestamp: datetime, ttl_minutes: int, source: str
    ) -> CacheEntry:
        """Record a fresh write for a key and rewrite the index.

        Args:
            key: Cache key
            timestamp: Write time
            ttl_minutes: Time-to-live in minutes
            source: Provenance of the payload ('api' or 'atom')

        Returns:
            The stored CacheEntry

        Raises:
            OSError: If the index cannot be written
        """
        entry = CacheEntry(
            key=key,
            timestamp=timestamp,
            ttl_minutes=ttl_minutes,
            expires_at=compute_expires_at(timestamp, ttl_minutes),
            source=source,
        )

        data = self.load()
        data[key] = entry.to_index()

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(self.meta_path, "w") as f:
            json.dump(data, f, indent=2)

        return entry
