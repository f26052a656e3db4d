"""Unit tests for the SAS XPORT decoder."""

from __future__ import annotations

import pandas as pd
import pytest

from core.errors import DecodeError
from ingest.decoded_payload import MultiplePayload, SinglePayload
from ingest.xport_decoder import XportDecodeOptions, decode_xport, split_xport_members
from tests.xport_builder import XportColumn, XportMember, build_library, write_library

DEMO_MEMBER = XportMember(
    name="DEMO_C",
    columns=(
        XportColumn("SEQN", "Respondent sequence number"),
        XportColumn("RIDAGEYR", "Age in years at screening"),
        XportColumn("RIAGENDR", "Gender", kind="char", width=4, format="$"),
    ),
    rows=((21005.0, 19.0, "M"), (21006.0, None, "F"), (21007.0, 14.5, "F")),
)
BPX_MEMBER = XportMember(
    name="BPX_C",
    columns=(XportColumn("SEQN", "Respondent sequence number"), XportColumn("BPXSY1", "Systolic")),
    rows=((21005.0, 118.0), (21007.0, 104.0)),
)


def test_decode_xport_reads_single_member(tmp_path) -> None:
    """One member should decode into a single named table with labels."""
    path = write_library(tmp_path / "DEMO_C.XPT", [DEMO_MEMBER])

    payload = decode_xport(path)

    assert isinstance(payload, SinglePayload)
    table = payload.table
    assert table.name == "demo_c"
    assert table.data["SEQN"].tolist() == [21005, 21006, 21007]
    assert table.data["RIDAGEYR"].isna().tolist() == [False, True, False]
    assert table.data["RIAGENDR"].tolist() == ["M", "F", "F"]


def test_decode_xport_coerces_subject_id_to_nullable_int(tmp_path) -> None:
    """Integral respondent ids should be stored as Int64."""
    path = write_library(tmp_path / "DEMO_C.XPT", [DEMO_MEMBER])

    table = decode_xport(path).tables()[0]

    assert str(table.data["SEQN"].dtype) == "Int64"


def test_decode_xport_builds_label_table(tmp_path) -> None:
    """Label rows should carry name, label, type, width, and format."""
    path = write_library(tmp_path / "DEMO_C.XPT", [DEMO_MEMBER])

    labels = decode_xport(path).tables()[0].labels

    assert list(labels.columns) == ["name", "label", "type", "width", "format"]
    assert labels.iloc[2].tolist() == ["RIAGENDR", "Gender", "char", 4, "$"]


def test_decode_xport_splits_multiple_members(tmp_path) -> None:
    """Several members should decode into a keyed multiple payload."""
    path = write_library(tmp_path / "COMBINED.XPT", [DEMO_MEMBER, BPX_MEMBER])

    payload = decode_xport(path)

    assert isinstance(payload, MultiplePayload)
    assert sorted(payload.tables_by_name) == ["bpx_c", "demo_c"]
    assert len(payload.tables_by_name["bpx_c"].data) == 2


def test_decode_xport_handles_member_without_rows(tmp_path) -> None:
    """A member with no observations decodes to an empty table."""
    empty = XportMember(name="EMPTY", columns=BPX_MEMBER.columns, rows=())
    path = write_library(tmp_path / "EMPTY.XPT", [empty])

    table = decode_xport(path).tables()[0]

    assert table.data.empty and list(table.data.columns) == ["SEQN", "BPXSY1"]


def test_decode_xport_uses_explicit_encoding(tmp_path) -> None:
    """Character values should decode with the requested encoding."""
    member = XportMember(
        name="LANG",
        columns=(XportColumn("SEQN", "Id"), XportColumn("NAME", "Name", kind="char", width=8)),
        rows=((1.0, "José"),),
    )
    path = tmp_path / "LANG.XPT"
    path.write_bytes(build_library([member], encoding="utf-8"))

    table = decode_xport(path, XportDecodeOptions(encoding="utf-8")).tables()[0]

    assert table.data["NAME"].tolist() == ["José"]


def test_split_xport_members_prefixes_library_header() -> None:
    """Each split member should start with the library header."""
    raw = build_library([DEMO_MEMBER, BPX_MEMBER])

    members = split_xport_members(raw)

    assert len(members) == 2
    assert all(member[:240] == raw[:240] for member in members)


@pytest.mark.parametrize("content", [b"", b"not an xport file" * 10])
def test_decode_xport_rejects_invalid_payloads(tmp_path, content: bytes) -> None:
    """Empty and non-XPORT files should raise decode errors."""
    path = tmp_path / "BAD.XPT"
    path.write_bytes(content)

    with pytest.raises(DecodeError):
        decode_xport(path)


def test_decode_xport_rejects_truncated_library(tmp_path) -> None:
    """A download cut short inside the observations should not decode to fewer rows."""
    raw = build_library([DEMO_MEMBER])
    path = tmp_path / "DEMO_C.XPT"
    path.write_bytes(raw[:-60])

    with pytest.raises(DecodeError, match="truncated"):
        decode_xport(path)


def test_decode_xport_rejects_missing_file(tmp_path) -> None:
    """An absent file should raise a decode error naming the path."""
    with pytest.raises(DecodeError, match="MISSING.XPT"):
        decode_xport(tmp_path / "MISSING.XPT")


def test_decoded_frame_is_pandas(tmp_path) -> None:
    """Decoded data should be a regular pandas frame."""
    path = write_library(tmp_path / "BPX_C.XPT", [BPX_MEMBER])

    assert isinstance(decode_xport(path).tables()[0].data, pd.DataFrame)
