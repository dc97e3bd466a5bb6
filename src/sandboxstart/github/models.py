"""Typed records for GitHub API responses.

Raw responses are described with TypedDicts and decoded into dataclasses at
the client boundary, with missing or malformed fields defaulted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict

from sandboxstart.cache.metadata import SOURCE_API, SOURCE_ATOM


class RawAsset(TypedDict, total=False):
    """Release asset as returned by the releases endpoints."""

    name: str
    browser_download_url: str
    size: int
    content_type: str


class RawRelease(TypedDict, total=False):
    """Release as returned by the releases endpoints (or synthesized from a feed)."""

    tag_name: str
    name: Optional[str]
    published_at: Optional[str]
    prerelease: bool
    html_url: Optional[str]
    assets: List[RawAsset]
    source: str  # only present on feed-derived releases


class RawContentItem(TypedDict, total=False):
    """Entry of a contents endpoint directory listing."""

    name: str
    path: str
    type: str  # 'file', 'dir', 'symlink', 'submodule'
    download_url: Optional[str]
    size: int
    sha: str


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value


@dataclass
class ReleaseAsset:
    """Downloadable file attached to a release."""

    name: str
    browser_download_url: str
    size: int = 0
    content_type: str = ""

    @classmethod
    def from_api(cls, data: Any) -> Optional["ReleaseAsset"]:
        if not isinstance(data, dict) or not data.get("name"):
            return None
        return cls(
            name=_str(data.get("name")),
            browser_download_url=_str(data.get("browser_download_url")),
            size=_int(data.get("size")),
            content_type=_str(data.get("content_type")),
        )

    def to_api(self) -> RawAsset:
        return {
            "name": self.name,
            "browser_download_url": self.browser_download_url,
            "size": self.size,
            "content_type": self.content_type,
        }


@dataclass
class Release:
    """A release, whether read from the REST API or an Atom feed.

    Feed-derived releases have no assets.
    """

    tag_name: str
    published_at: Optional[str] = None
    prerelease: bool = False
    assets: List[ReleaseAsset] = field(default_factory=list)
    source: str = SOURCE_API
    name: Optional[str] = None
    html_url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> Optional["Release"]:
        """Decode a raw release, or None if it has no tag."""
        if not isinstance(data, dict) or not _str(data.get("tag_name")):
            return None

        raw_assets = data.get("assets")
        assets = []
        if isinstance(raw_assets, list):
            for raw in raw_assets:
                asset = ReleaseAsset.from_api(raw)
                if asset is not None:
                    assets.append(asset)

        source = data.get("source")
        return cls(
            tag_name=data["tag_name"],
            published_at=data.get("published_at") or None,
            prerelease=bool(data.get("prerelease", False)),
            assets=assets,
            source=source if source in (SOURCE_API, SOURCE_ATOM) else SOURCE_API,
            name=data.get("name") or None,
            html_url=data.get("html_url") or None,
        )

    def to_api(self) -> RawRelease:
        """Encode in the REST response shape (used for feed write-through)."""
        return {
            "tag_name": self.tag_name,
            "name": self.name,
            "published_at": self.published_at,
            "prerelease": self.prerelease,
            "html_url": self.html_url,
            "assets": [asset.to_api() for asset in self.assets],
            "source": self.source,
        }

    @property
    def version(self) -> str:
        """Tag without a leading 'v'."""
        return self.tag_name[1:] if self.tag_name[:1] in ("v", "V") else self.tag_name


def decode_releases(payload: Any) -> List[Release]:
    """Decode a releases list payload, skipping malformed items."""
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        return []
    releases = [Release.from_api(item) for item in payload]
    return [r for r in releases if r is not None]


@dataclass
class FileListingEntry:
    """Entry of a remote directory listing."""

    name: str
    type: str
    download_url: Optional[str] = None
    path: str = ""
    size: int = 0
    sha: str = ""

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @classmethod
    def from_api(cls, data: Any) -> Optional["FileListingEntry"]:
        if not isinstance(data, dict) or not _str(data.get("name")):
            return None
        return cls(
            name=data["name"],
            type=_str(data.get("type"), "file"),
            download_url=data.get("download_url") or None,
            path=_str(data.get("path")),
            size=_int(data.get("size")),
            sha=_str(data.get("sha")),
        )


def decode_listing(payload: Any) -> List[FileListingEntry]:
    """Decode a contents listing payload, skipping malformed items.

    A single-file response (a dict) yields a one-entry listing.
    """
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        return []
    entries = [FileListingEntry.from_api(item) for item in payload]
    return [e for e in entries if e is not None]


@dataclass
class RateLimitStatus:
    """Core REST rate-limit bucket from ``/rate_limit``."""

    limit: int
    remaining: int
    used: int = 0
    reset_at: Optional[datetime] = None

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    @classmethod
    def from_api(cls, data: Any) -> "RateLimitStatus":
        core: Dict[str, Any] = {}
        if isinstance(data, dict):
            resources = data.get("resources")
            if isinstance(resources, dict) and isinstance(resources.get("core"), dict):
                core = resources["core"]
            elif isinstance(data.get("rate"), dict):
                core = data["rate"]

        reset = core.get("reset")
        reset_at = None
        if isinstance(reset, (int, float)) and not isinstance(reset, bool):
            reset_at = datetime.fromtimestamp(reset, tz=timezone.utc)

        return cls(
            limit=_int(core.get("limit")),
            remaining=_int(core.get("remaining")),
            used=_int(core.get("used")),
            reset_at=reset_at,
        )
