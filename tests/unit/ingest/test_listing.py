"""Unit tests for directory listing parsing."""

from __future__ import annotations

import pytest
import requests

from core.errors import ListingParseError
from ingest.listing import list_files, parse_listing
from tests.fixture_paths import fixture_path

DATA_ROOT = "ftp://host/nhanes/1999-2000/"
MORTALITY_ROOT = "ftp://host/linked_mortality"


def _fixture_text(name: str) -> str:
    return fixture_path(f"listings/{name}").read_text(encoding="utf-8")


def test_parse_listing_keeps_matching_data_files() -> None:
    """Only XPORT files should survive the data listing filter."""
    entries = parse_listing(_fixture_text("data_1999_2000.txt"), DATA_ROOT, r"\.xpt$")

    assert [entry.filename for entry in entries] == ["DEMO.XPT", "BPX.XPT", "PAXRAW.xpt"]
    assert entries[0].size == 3395520
    assert entries[0].url == "ftp://host/nhanes/1999-2000/DEMO.XPT"


def test_parse_listing_filters_mortality_by_wave_and_extension() -> None:
    """Mortality files are filtered by wave text and the .dat extension."""
    entries = parse_listing(
        _fixture_text("mortality.txt"),
        MORTALITY_ROOT,
        "NHANES_1999_2000",
        (".dat",),
    )

    assert [entry.filename for entry in entries] == ["NHANES_1999_2000_MORT_2015_PUBLIC.dat"]
    assert entries[0].url == "ftp://host/linked_mortality/NHANES_1999_2000_MORT_2015_PUBLIC.dat"


def test_parse_listing_handles_crlf_and_no_match() -> None:
    """CRLF listings parse and an unmatched filter yields an empty list."""
    listing = _fixture_text("data_1999_2000.txt").replace("\n", "\r\n")

    assert len(parse_listing(listing, DATA_ROOT, "demo")) == 1
    assert parse_listing(listing, DATA_ROOT, "no-such-file") == []


def test_parse_listing_raises_for_short_matching_line() -> None:
    """A matching line without nine columns is malformed."""
    with pytest.raises(ListingParseError, match="line 2"):
        parse_listing(_fixture_text("malformed.txt"), DATA_ROOT, "demo")


def test_list_files_uses_injected_fetcher() -> None:
    """Listing text should come from the injected reader."""
    requested: list[str] = []

    def fetch_text(url: str) -> str:
        requested.append(url)
        return _fixture_text("data_1999_2000.txt")

    entries = list_files(DATA_ROOT, r"\.xpt$", fetch_text=fetch_text)

    assert requested == [DATA_ROOT] and len(entries) == 3


def test_list_files_wraps_transport_errors() -> None:
    """Read failures surface as listing errors naming the URL."""

    def fetch_text(url: str) -> str:
        raise requests.ConnectionError("refused")

    with pytest.raises(ListingParseError, match="ftp://host/nhanes/1999-2000/"):
        list_files(DATA_ROOT, fetch_text=fetch_text)
