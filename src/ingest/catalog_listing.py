"""Remote data catalog resolver.

This module parses the published NHANES data catalog page into typed
catalog entries. Each entry pairs a data file download link with its
documentation link and the year span it covers.
"""

from __future__ import annotations

from dataclasses import asdict
from html.parser import HTMLParser
from pathlib import PurePosixPath
import re
from urllib.parse import urljoin, urlsplit

import pandas as pd

from core.constants import (
    CATALOG_RESTRICTED_MARKER,
    CATALOG_TABLE_ID,
    DEFAULT_CATALOG_URL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    MULTIPLE_WAVE_LABEL,
    XPORT_EXTENSION,
)
from core.errors import ListingParseError
from core.logging_config import get_logger
from core.types import CatalogEntry
from ingest.listing import TextFetcher, read_listing_text

_LOGGER = get_logger(__name__)

_DOC_EXTENSION = ".htm"
_DOC_TEXT_SUFFIX = " Doc"
_REQUIRED_COLUMNS = ("years", "data_file_name", "doc_file", "data_file", "date_published")
_WAVE_LETTER_SUFFIX = re.compile(r"_[a-z]$")
_YEAR_SPAN = re.compile(r"^\s*(\d{4})\s*-\s*(\d{4})\s*$")
_COLUMN_SEPARATORS = re.compile(r"[^0-9a-z]+")


class _CatalogTableParser(HTMLParser):
    """Collect header cells, row cells, and anchors of one table by id."""

    def __init__(self, table_id: str) -> None:
        super().__init__(convert_charrefs=True)
        self._table_id = table_id
        self._table_depth = 0
        self._row: list[str] | None = None
        self._row_is_header = False
        self._cell: list[str] | None = None
        self.found = False
        self.header: list[str] = []
        self.rows: list[list[str]] = []
        self.hrefs: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = dict(attrs)
        if tag == "table":
            if self._table_depth:
                self._table_depth += 1
            elif attributes.get("id") == self._table_id:
                self._table_depth = 1
                self.found = True
            return
        if not self._table_depth:
            return
        if tag == "tr":
            self._row = []
            self._row_is_header = False
        elif tag in ("td", "th") and self._row is not None:
            self._cell = []
            self._row_is_header = self._row_is_header or tag == "th"
        elif tag == "a" and attributes.get("href"):
            self.hrefs.append(str(attributes["href"]))
        elif tag == "br" and self._cell is not None:
            self._cell.append(" ")

    def handle_endtag(self, tag: str) -> None:
        if not self._table_depth:
            return
        if tag == "table":
            self._table_depth -= 1
        elif tag in ("td", "th") and self._cell is not None and self._row is not None:
            self._row.append(" ".join("".join(self._cell).split()))
            self._cell = None
        elif tag == "tr" and self._row is not None:
            if self._row_is_header and not self.header:
                self.header = self._row
            elif self._row and not self._row_is_header:
                self.rows.append(self._row)
            self._row = None

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)


def fetch_catalog(
    url: str = DEFAULT_CATALOG_URL,
    fetch_text: TextFetcher | None = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> list[CatalogEntry]:
    """Fetch and parse the remote data catalog page.

    Args:
        url: Catalog page URL.
        fetch_text: Optional replacement for the network read.
        timeout: Per-request timeout in seconds.

    Returns:
        Catalog entries in page order.

    Raises:
        ListingParseError: If the page cannot be read or has no results table.
    """
    page_html = read_listing_text(url, fetch_text, timeout)
    entries = parse_catalog_page(page_html, url)
    _LOGGER.info("catalog_resolved", url=url, entry_count=len(entries))
    return entries


def parse_catalog_page(page_html: str, page_url: str) -> list[CatalogEntry]:
    """Parse catalog page HTML into entries with absolute links.

    Restricted-access rows and rows without a data download link are
    dropped.

    Args:
        page_html: Raw page HTML.
        page_url: URL the page was read from, used to resolve links.

    Returns:
        Catalog entries in page order.

    Raises:
        ListingParseError: If the results table or its columns are missing.
    """
    parser = _CatalogTableParser(CATALOG_TABLE_ID)
    parser.feed(page_html)
    parser.close()
    if not parser.found:
        raise ListingParseError(
            f"Failed to parse catalog page {page_url}: table '{CATALOG_TABLE_ID}' not found. "
            "Check the catalog URL and page layout."
        )
    columns = [_normalize_column(cell) for cell in parser.header]
    missing_columns = [name for name in _REQUIRED_COLUMNS if name not in columns]
    if missing_columns:
        raise ListingParseError(
            f"Failed to parse catalog page {page_url}: missing columns {missing_columns}. "
            "Check the catalog page layout."
        )
    doc_links = _links_by_key(parser.hrefs, _DOC_EXTENSION, page_url)
    data_links = _links_by_key(parser.hrefs, XPORT_EXTENSION, page_url)
    entries: list[CatalogEntry] = []
    for cells in parser.rows:
        if len(cells) != len(columns):
            continue
        row = dict(zip(columns, cells))
        if row["data_file"] == CATALOG_RESTRICTED_MARKER:
            continue
        key = row["doc_file"].replace(_DOC_TEXT_SUFFIX, "").strip().lower()
        data_link = data_links.get(key)
        if data_link is None:
            continue
        entries.append(_build_entry(row, key, doc_links.get(key), data_link, page_url))
    return entries


def catalog_to_frame(entries: list[CatalogEntry]) -> pd.DataFrame:
    """Convert catalog entries into a data frame, one row per entry."""
    columns = list(CatalogEntry.__dataclass_fields__)
    return pd.DataFrame([asdict(entry) for entry in entries], columns=columns)


def _build_entry(
    row: dict[str, str],
    key: str,
    doc_link: str | None,
    data_link: str,
    page_url: str,
) -> CatalogEntry:
    start_year, end_year = _parse_year_span(row["years"], page_url)
    wave = MULTIPLE_WAVE_LABEL if end_year - start_year > 1 else str(start_year)
    return CatalogEntry(
        years=row["years"],
        data_file_name=row["data_file_name"],
        doc_file=row["doc_file"],
        data_file=row["data_file"],
        date_published=row["date_published"],
        key=key,
        name=_WAVE_LETTER_SUFFIX.sub("", key),
        doc_link=doc_link,
        data_link=data_link,
        start_year=start_year,
        end_year=end_year,
        wave=wave,
    )


def _links_by_key(hrefs: list[str], extension: str, page_url: str) -> dict[str, str]:
    """Map lower-cased file stems to absolute links, first link wins."""
    links: dict[str, str] = {}
    for href in hrefs:
        filename = PurePosixPath(urlsplit(href).path).name
        if not filename.lower().endswith(extension):
            continue
        key = filename[: -len(extension)].lower()
        links.setdefault(key, urljoin(page_url, href))
    return links


def _parse_year_span(years: str, page_url: str) -> tuple[int, int]:
    match = _YEAR_SPAN.match(years)
    if match is None:
        raise ListingParseError(
            f"Failed to parse catalog page {page_url}: year span '{years}' "
            "is not in 'YYYY-YYYY' form."
        )
    return int(match.group(1)), int(match.group(2))


def _normalize_column(header_text: str) -> str:
    return _COLUMN_SEPARATORS.sub("_", header_text.strip().lower()).strip("_")
