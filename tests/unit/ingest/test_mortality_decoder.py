"""Unit tests for the linked mortality decoder."""

from __future__ import annotations

import pytest

from core.errors import DecodeError
from ingest.mortality_decoder import MORTALITY_FIELDS, decode_mortality, mortality_labels
from tests.fixture_paths import fixture_path

MORTALITY_FILE = fixture_path("mortality/NHANES_1999_2000_MORT_2015_PUBLIC.dat")


def test_decode_mortality_reads_fixed_width_columns() -> None:
    """Fixed-width positions should map onto the fourteen variables."""
    table = decode_mortality(MORTALITY_FILE).table

    assert table.name == "death"
    assert list(table.data.columns) == [field.name for field in MORTALITY_FIELDS]
    second = table.data.iloc[1]
    assert (second["SEQN"], second["MORTSTAT"], second["PERMTH_EXM"]) == (2, 1, 99)
    assert second["UCOD_LEADING"] == "001"


def test_decode_mortality_maps_dots_and_blanks_to_null() -> None:
    """Dot placeholders should become missing values."""
    data = decode_mortality(MORTALITY_FILE).table.data

    assert data["CAUSEAVL"].isna().tolist() == [True, False, True]
    assert data["UCOD_LEADING"].isna().tolist() == [True, False, True]
    assert data["PERMTH_INT"].isna().tolist() == [False, False, True]


def test_decode_mortality_uses_nullable_types() -> None:
    """Integer fields use Int64 and text fields use the string dtype."""
    data = decode_mortality(MORTALITY_FILE).table.data

    assert str(data["SEQN"].dtype) == "Int64"
    assert str(data["UCOD_LEADING"].dtype) == "string"


def test_mortality_labels_describe_every_field() -> None:
    """The label table should list all variables with their widths."""
    labels = mortality_labels()

    assert len(labels) == 14
    assert labels.iloc[0].tolist() == [
        "SEQN",
        "NHANES Respondent Sequence Number",
        "numeric",
        5,
        "",
    ]


@pytest.mark.parametrize(
    ("name", "message"),
    [("short_line.dat", "at least 54"), ("bad_integer.dat", "ELIGSTAT")],
)
def test_decode_mortality_rejects_malformed_lines(name: str, message: str) -> None:
    """Short lines and non-integer values are decode errors."""
    with pytest.raises(DecodeError, match=message):
        decode_mortality(fixture_path(f"mortality/{name}"))


def test_decode_mortality_rejects_empty_file(tmp_path) -> None:
    """An empty download has nothing to decode."""
    path = tmp_path / "empty.dat"
    path.write_text("", encoding="utf-8")

    with pytest.raises(DecodeError, match="empty"):
        decode_mortality(path)
