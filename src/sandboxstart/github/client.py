"""Rate-limit aware GitHub REST client with cache write-through.

Only HTTP 403 (rate limit) triggers degraded mode: a stale cache entry is
served first, then, for releases listings, the public Atom feed. Every
other error is raised to the caller immediately.
"""

import logging
import re
import warnings
from typing import Any, List, Optional

import requests

from sandboxstart.cache.metadata import SOURCE_API, SOURCE_ATOM
from sandboxstart.cache.store import CacheStore, derive_cache_key
from sandboxstart.config import SandboxConfig
from sandboxstart.github.atom import AtomFeedAdapter
from sandboxstart.github.models import (
    FileListingEntry,
    RateLimitStatus,
    Release,
    decode_listing,
    decode_releases,
)

logger = logging.getLogger(__name__)

RELEASES_PATH_PATTERN = re.compile(
    r"/repos/(?P<owner>[^/?#]+)/(?P<repo>[^/?#]+)/releases(?P<latest>/latest)?/?(?:[?#]|$)"
)

RATE_LIMIT_STATUS = 403


class GitHubError(Exception):
    """Base exception for GitHub client errors."""

    pass


class HttpError(GitHubError):
    """Raised when a request fails and no fallback applies.

    Attributes:
        url: Requested URL
        status_code: HTTP status, or None for network failures (timeout, DNS)
    """

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RateLimitError(HttpError):
    """Raised when a 403 response exhausted every fallback."""

    pass


def feed_url_for(uri: str, web_url: str = "https://github.com") -> Optional[str]:
    """Rewrite a REST releases URI to the repository's public Atom feed.

    Examples:
        >>> feed_url_for('https://api.github.com/repos/o/r/releases?per_page=5')
        'https://github.com/o/r/releases.atom'
        >>> feed_url_for('https://api.github.com/repos/o/r/contents/x') is None
        True
    """
    match = RELEASES_PATH_PATTERN.search(uri)
    if match is None:
        return None
    return f"{web_url.rstrip('/')}/{match['owner']}/{match['repo']}/releases.atom"


def is_latest_release_uri(uri: str) -> bool:
    match = RELEASES_PATH_PATTERN.search(uri)
    return bool(match and match["latest"])


class GitHubClient:
    """Issues GET requests to a GitHub-compatible REST API.

    Examples:
        >>> client = GitHubClient(SandboxConfig())
        >>> releases = client.get_releases('microsoft', 'winget-cli', per_page=5)
    """

    def __init__(
        self,
        config: Optional[SandboxConfig] = None,
        cache: Optional[CacheStore] = None,
        session: Optional[requests.Session] = None,
        feed_adapter: Optional[AtomFeedAdapter] = None,
    ):
        """Initialize client.

        Args:
            config: Client configuration (defaults if None)
            cache: Response cache (built from config.cache_dir if None)
            session: HTTP session to reuse
            feed_adapter: Atom fallback adapter (shares the session if None)
        """
        self.config = config or SandboxConfig()
        self.cache = cache if cache is not None else CacheStore(self.config.cache_dir)
        self.session = session or requests.Session()
        self.feed_adapter = feed_adapter or AtomFeedAdapter(
            session=self.session,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
        )

    # ==================== Low-level requests ====================

    def _headers(self) -> dict:
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/vnd.github+json",
        }
        token = self.config.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _resolve(self, uri: str) -> str:
        if "://" in uri:
            return uri
        return f"{self.config.api_url}/{uri.lstrip('/')}"

    def _get(self, url: str, headers: Optional[dict] = None) -> requests.Response:
        """GET with the fixed timeout, mapping failures to HttpError."""
        try:
            response = self.session.get(
                url,
                headers=headers if headers is not None else self._headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            raise HttpError(f"Request to {url} failed: {e}", url) from e

        if response.status_code >= 400:
            raise HttpError(
                f"GET {url} returned HTTP {response.status_code}",
                url,
                response.status_code,
            )
        return response

    def request(
        self,
        uri: str,
        use_cache: bool = False,
        cache_ttl_minutes: Optional[int] = None,
        allow_feed_fallback: bool = False,
    ) -> Any:
        """GET a REST resource and return the decoded JSON body.

        Args:
            uri: Full URL or path relative to the API root
            use_cache: Serve fresh cache hits and write successful responses through
            cache_ttl_minutes: TTL for write-through (config default if None)
            allow_feed_fallback: On rate limit, fall back to the Atom feed for releases URIs

        Returns:
            Decoded JSON payload

        Raises:
            RateLimitError: Rate limited and no stale cache or feed data was usable
            HttpError: Any other HTTP or network failure
        """
        url = self._resolve(uri)
        key = derive_cache_key(url, self.config.api_url)
        ttl = cache_ttl_minutes if cache_ttl_minutes is not None else self.config.default_ttl_minutes

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return cached

        try:
            response = self._get(url)
            try:
                payload = response.json()
            except ValueError as e:
                raise HttpError(f"Invalid JSON from {url}: {e}", url, response.status_code) from e
        except HttpError as e:
            if e.status_code != RATE_LIMIT_STATUS:
                raise
            return self._rate_limited(url, key, ttl, use_cache, allow_feed_fallback, e)

        if use_cache:
            self.cache.put(key, payload, ttl, source=SOURCE_API)
        return payload

    def _rate_limited(
        self,
        url: str,
        key: str,
        ttl: int,
        use_cache: bool,
        allow_feed_fallback: bool,
        error: HttpError,
    ) -> Any:
        """Serve degraded data after a 403, or raise RateLimitError."""
        logger.warning(f"GitHub API rate limit reached for {url}")

        if use_cache:
            stale = self.cache.get(key, ignore_expiry=True)
            if stale is not None:
                message = f"GitHub API rate limited; using stale cached data for {key}"
                logger.warning(message)
                warnings.warn(message)
                return stale

        feed_url = feed_url_for(url, self.config.web_url) if allow_feed_fallback else None
        if feed_url is not None:
            logger.info(f"Falling back to release feed {feed_url}")
            releases = self.feed_adapter.parse(feed_url)

            if is_latest_release_uri(url):
                stable = [r for r in releases if not r.prerelease]
                if not stable:
                    raise RateLimitError(
                        f"Rate limited and feed has no stable release for {url}",
                        url,
                        error.status_code,
                    ) from error
                payload = stable[0].to_api()
            else:
                payload = [r.to_api() for r in releases]

            if use_cache and payload:
                self.cache.put(key, payload, ttl, source=SOURCE_ATOM)
            return payload

        raise RateLimitError(str(error), url, error.status_code) from error

    def download(self, url: str) -> bytes:
        """Fetch raw bytes (file or asset download URL). Never cached.

        Raises:
            HttpError: On any HTTP or network failure
        """
        headers = {"User-Agent": self.config.user_agent}
        token = self.config.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return self._get(url, headers=headers).content

    # ==================== Endpoints ====================

    def get_rate_limit(self) -> RateLimitStatus:
        """Get the current core rate-limit bucket. Never cached."""
        return RateLimitStatus.from_api(self.request("rate_limit"))

    def get_releases(
        self,
        owner: str,
        repo: str,
        per_page: int = 10,
        use_cache: bool = True,
        cache_ttl_minutes: Optional[int] = None,
    ) -> List[Release]:
        """List releases, newest first.

        Falls back to stale cache and then the Atom feed when rate limited.
        """
        payload = self.request(
            f"repos/{owner}/{repo}/releases?per_page={per_page}",
            use_cache=use_cache,
            cache_ttl_minutes=cache_ttl_minutes,
            allow_feed_fallback=True,
        )
        return decode_releases(payload)

    def get_latest_release(
        self,
        owner: str,
        repo: str,
        use_cache: bool = True,
        cache_ttl_minutes: Optional[int] = None,
    ) -> Optional[Release]:
        """Get the latest stable release, or None if the payload has none."""
        payload = self.request(
            f"repos/{owner}/{repo}/releases/latest",
            use_cache=use_cache,
            cache_ttl_minutes=cache_ttl_minutes,
            allow_feed_fallback=True,
        )
        releases = decode_releases(payload)
        return releases[0] if releases else None

    def list_contents(
        self,
        owner: str,
        repo: str,
        path: str = "",
        ref: str = "main",
        use_cache: bool = True,
        cache_ttl_minutes: Optional[int] = None,
    ) -> List[FileListingEntry]:
        """List a repository folder through the contents endpoint."""
        path = path.strip("/")
        payload = self.request(
            f"repos/{owner}/{repo}/contents/{path}?ref={ref}",
            use_cache=use_cache,
            cache_ttl_minutes=cache_ttl_minutes,
        )
        return decode_listing(payload)
