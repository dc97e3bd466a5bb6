"""Selective sync of remote scripts and package lists.

Key components:
- SelectiveSyncEngine: Two-policy sync with cleanup and migration
- SyncPolicyState: Persisted per-list state
- SyncResult: Outcome counts
"""

from sandboxstart.sync.engine import SelectiveSyncEngine, SyncResult, matches_any
from sandboxstart.sync.state import SyncPolicyState
from sandboxstart.sync.text import (
    OVERRIDE_MARKER,
    has_override_marker,
    is_text_file,
    normalize_line_endings,
)

__all__ = [
    "SelectiveSyncEngine",
    "SyncResult",
    "SyncPolicyState",
    "OVERRIDE_MARKER",
    "has_override_marker",
    "is_text_file",
    "matches_any",
    "normalize_line_endings",
]
