"""Release list fallback built from a repository's ``releases.atom`` feed.

Only used when the REST API is rate limited. The feed carries no asset
metadata, so every release it yields has an empty asset list.
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

import requests

from sandboxstart.cache.metadata import SOURCE_ATOM
from sandboxstart.github.models import Release

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"\b[vV]?\d+(?:\.\d+){2,}")
PRERELEASE_PATTERN = re.compile(r"pre-release|prerelease|preview|beta|alpha", re.IGNORECASE)

ENTRY_TAGS = ("entry", "item")
DATE_TAGS = ("updated", "published", "pubDate")


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _entry_link(entry: ET.Element) -> Optional[str]:
    link = _child(entry, "link")
    if link is None:
        return None
    return link.get("href") or (link.text or "").strip() or None


def parse_entry(entry: ET.Element) -> Optional[Release]:
    """Build a Release from one feed entry.

    Returns:
        Release, or None if the title has no recognizable version
    """
    title = _child_text(entry, "title") or ""
    match = VERSION_PATTERN.search(title)
    if match is None:
        logger.debug(f"Skipping feed entry without a version: {title!r}")
        return None

    published = None
    for tag in DATE_TAGS:
        published = _child_text(entry, tag)
        if published:
            break

    return Release(
        tag_name=match.group(0),
        published_at=published,
        prerelease=bool(PRERELEASE_PATTERN.search(title)),
        assets=[],
        source=SOURCE_ATOM,
        name=title,
        html_url=_entry_link(entry),
    )


def parse_feed(text: str) -> List[Release]:
    """Parse feed XML into releases, in feed order.

    Returns:
        Releases found; empty for empty, non-XML or entry-less input
    """
    if not text or not text.strip():
        return []

    try:
        root = ET.fromstring(text)
    except (ET.ParseError, ValueError) as e:
        logger.warning(f"Could not parse release feed: {e}")
        return []

    releases = []
    for element in root.iter():
        if _local_name(element.tag) not in ENTRY_TAGS:
            continue
        release = parse_entry(element)
        if release is not None:
            releases.append(release)
    return releases


class AtomFeedAdapter:
    """Fetches and parses release feeds. Never raises."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
        user_agent: str = "sandboxstart",
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent

    def parse(self, feed_url: str) -> List[Release]:
        """Fetch a feed and return its releases.

        Args:
            feed_url: URL of a ``releases.atom`` feed

        Returns:
            Releases, or an empty list on any fetch or parse failure
        """
        try:
            response = self.session.get(
                feed_url,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/atom+xml, application/xml;q=0.9, */*;q=0.5",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            text = response.text
        except requests.RequestException as e:
            logger.warning(f"Could not fetch release feed {feed_url}: {e}")
            return []

        releases = parse_feed(text)
        logger.debug(f"Parsed {len(releases)} releases from {feed_url}")
        return releases
