"""Text helpers for script sync: override marker and line endings."""

import re
from pathlib import Path

# First line that opts a file out of automated overwrite and deletion
OVERRIDE_MARKER = "# CUSTOM OVERRIDE"
OVERRIDE_MARKER_PATTERN = re.compile(r"^\s*#\s*CUSTOM\s+OVERRIDE\s*$", re.IGNORECASE)

# Files with these suffixes get line-ending normalization; others are compared as raw bytes
TEXT_SUFFIXES = frozenset(
    {
        ".ps1",
        ".psm1",
        ".psd1",
        ".cmd",
        ".bat",
        ".txt",
        ".md",
        ".ini",
        ".cfg",
        ".json",
        ".xml",
        ".yaml",
        ".yml",
        ".reg",
        ".py",
        ".wsb",
    }
)


def is_text_file(name: str) -> bool:
    """Check whether a file name is classified as text."""
    return Path(name).suffix.lower() in TEXT_SUFFIXES


def normalize_line_endings(text: str) -> str:
    """Convert every line break to CRLF.

    All breaks are first collapsed to LF so that mixed input does not end up
    with doubled carriage returns; the result is stable under repetition.

    Examples:
        >>> normalize_line_endings("a\\r\\nb\\n c\\r\\n")
        'a\\r\\nb\\r\\n c\\r\\n'
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.replace("\n", "\r\n")


def decode_text(data: bytes) -> str:
    """Decode file content as UTF-8, dropping a BOM and replacing bad bytes."""
    return data.decode("utf-8-sig", errors="replace")


def normalize_content(name: str, data: bytes) -> bytes:
    """Return the canonical bytes used for comparison and writing.

    Text files are normalized to CRLF line endings; binaries pass through.
    Undecodable bytes and any BOM survive the round trip unchanged.
    """
    if not is_text_file(name):
        return data
    text = data.decode("utf-8", errors="surrogateescape")
    return normalize_line_endings(text).encode("utf-8", errors="surrogateescape")


def has_override_marker(path: Path) -> bool:
    """Check whether a local file's first line is the override marker.

    Args:
        path: Local file path

    Returns:
        True if the file exists and opts out of sync
    """
    path = Path(path)
    if not path.is_file():
        return False

    with open(path, "rb") as f:
        first_line = f.readline()

    return bool(OVERRIDE_MARKER_PATTERN.match(decode_text(first_line).rstrip("\r\n")))
