"""GitHub REST access with rate-limit fallbacks.

Key components:
- GitHubClient: Cached GET requests with stale-cache and feed fallback
- AtomFeedAdapter: Release list from ``releases.atom``
- Release, ReleaseAsset, FileListingEntry, RateLimitStatus: Typed responses
"""

from sandboxstart.github.atom import AtomFeedAdapter, parse_feed
from sandboxstart.github.client import (
    GitHubClient,
    GitHubError,
    HttpError,
    RateLimitError,
    feed_url_for,
)
from sandboxstart.github.models import (
    FileListingEntry,
    RateLimitStatus,
    Release,
    ReleaseAsset,
)

__all__ = [
    "GitHubClient",
    "GitHubError",
    "HttpError",
    "RateLimitError",
    "AtomFeedAdapter",
    "parse_feed",
    "feed_url_for",
    "Release",
    "ReleaseAsset",
    "FileListingEntry",
    "RateLimitStatus",
]
