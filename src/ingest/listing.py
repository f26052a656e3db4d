"""Remote directory listing resolver.

This module turns raw line-oriented directory listings (the format FTP
``LIST`` returns) into typed file entries. Only lines matching a caller
filter and a known file extension survive; an empty result is valid.
"""

from __future__ import annotations

from pathlib import PurePosixPath
import re
from typing import Callable

import requests

from core.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS, SUPPORTED_REMOTE_EXTENSIONS
from core.errors import ListingParseError
from core.logging_config import get_logger
from core.remote_uri import join_url
from core.types import RemoteFileEntry
from ingest.transport import read_remote_text

_LOGGER = get_logger(__name__)

_LINE_SPLIT = re.compile(r"\r*\n")
_LISTING_FIELD_COUNT = 9

TextFetcher = Callable[[str], str]


def list_files(
    remote_root: str,
    name_filter: str = "",
    extensions: tuple[str, ...] = SUPPORTED_REMOTE_EXTENSIONS,
    fetch_text: TextFetcher | None = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> list[RemoteFileEntry]:
    """List remote files under a directory.

    Args:
        remote_root: Remote directory URL.
        name_filter: Case-insensitive regular expression a line must match.
        extensions: File extensions to keep, compared case-insensitively.
        fetch_text: Optional replacement for the network read.
        timeout: Per-request timeout in seconds.

    Returns:
        Entries in listing order; empty when nothing matches.

    Raises:
        ListingParseError: If the listing cannot be retrieved or a
            matching line is malformed.
    """
    listing_text = read_listing_text(remote_root, fetch_text, timeout)
    entries = parse_listing(listing_text, remote_root, name_filter, extensions)
    _LOGGER.info(
        "listing_resolved",
        remote_root=remote_root,
        name_filter=name_filter,
        entry_count=len(entries),
    )
    return entries


def parse_listing(
    listing_text: str,
    remote_root: str,
    name_filter: str = "",
    extensions: tuple[str, ...] = SUPPORTED_REMOTE_EXTENSIONS,
) -> list[RemoteFileEntry]:
    """Parse listing text into file entries.

    Args:
        listing_text: Raw listing, one file per line.
        remote_root: Directory URL used to resolve download URLs.
        name_filter: Case-insensitive regular expression a line must match.
        extensions: File extensions to keep.

    Returns:
        Parsed entries in listing order.

    Raises:
        ListingParseError: If a matching line lacks the expected columns.
    """
    pattern = re.compile(name_filter, re.IGNORECASE)
    wanted_extensions = {extension.lower() for extension in extensions}
    entries: list[RemoteFileEntry] = []
    for line_number, line in enumerate(_LINE_SPLIT.split(listing_text), 1):
        if not line.strip() or not pattern.search(line):
            continue
        tokens = line.split()
        if PurePosixPath(tokens[-1]).suffix.lower() not in wanted_extensions:
            continue
        entries.append(_entry_from_tokens(tokens, remote_root, line_number))
    return entries


def _entry_from_tokens(tokens: list[str], remote_root: str, line_number: int) -> RemoteFileEntry:
    """Build one entry from the size/month/day/year/filename columns."""
    if len(tokens) < _LISTING_FIELD_COUNT:
        raise ListingParseError(
            f"Failed to parse listing line {line_number} under {remote_root}: "
            f"expected {_LISTING_FIELD_COUNT} columns, got {len(tokens)}."
        )
    size_text, month, day, year = tokens[4:8]
    filename = " ".join(tokens[8:])
    try:
        size = int(size_text)
    except ValueError as error:
        raise ListingParseError(
            f"Failed to parse listing line {line_number} under {remote_root}: "
            f"size column '{size_text}' is not an integer."
        ) from error
    return RemoteFileEntry(
        size=size,
        month=month,
        day=day,
        year=year,
        filename=filename,
        url=join_url(remote_root, filename),
    )


def read_listing_text(
    remote_root: str,
    fetch_text: TextFetcher | None,
    timeout: float,
) -> str:
    """Read raw listing or page text, wrapping transport failures.

    Raises:
        ListingParseError: If the text cannot be retrieved.
    """
    try:
        if fetch_text is not None:
            return fetch_text(remote_root)
        return read_remote_text(remote_root, timeout)
    except (requests.RequestException, OSError, ValueError) as error:
        raise ListingParseError(
            f"Failed to read remote listing at {remote_root}: {error}. "
            "Check the URL and network access, then retry."
        ) from error
