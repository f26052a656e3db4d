"""Remote URL helpers.

This module centralizes URL joining and scheme checks for ingest layers.
Joins never depend on whether a root carries a trailing slash.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from urllib.parse import urlsplit

HTTP_SCHEMES = ("http", "https")


def join_url(root: str, *parts: str, directory: bool = False) -> str:
    """Join path segments onto a remote root URL.

    Args:
        root: Base URL, with or without a trailing slash.
        parts: Path segments to append.
        directory: Whether the result should end with a slash.

    Returns:
        Joined URL.
    """
    segments = [root.rstrip("/")]
    segments.extend(part.strip("/") for part in parts if part.strip("/"))
    joined = "/".join(segments)
    return f"{joined}/" if directory else joined


def url_scheme(url: str) -> str:
    """Return the lower-cased scheme of a URL."""
    return urlsplit(url).scheme.lower()


def url_filename(url: str) -> str:
    """Return the last path component of a URL."""
    return PurePosixPath(urlsplit(url).path).name
