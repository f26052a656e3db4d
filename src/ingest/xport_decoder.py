"""SAS XPORT (transport v5) decoder.

This module splits an XPORT library into its members and decodes each
member with pandas, keeping the variable labels stored in the namestr
records. Text encoding is passed explicitly rather than set globally.
"""

from __future__ import annotations

from dataclasses import dataclass
import io
import struct
from pathlib import Path
from typing import Any

import pandas as pd

from core.constants import DEFAULT_XPORT_ENCODING, LABEL_COLUMNS, SUBJECT_ID_COLUMN
from core.errors import DecodeError
from core.logging_config import get_logger
from ingest.decoded_payload import DecodedPayload, DecodedTable, MultiplePayload, SinglePayload

_LOGGER = get_logger(__name__)

RECORD_LENGTH = 80
LIBRARY_HEADER_LENGTH = 3 * RECORD_LENGTH
LIBRARY_HEADER_PREFIX = b"HEADER RECORD*******LIBRARY HEADER RECORD!!!!!!!"
MEMBER_HEADER_PREFIX = b"HEADER RECORD*******MEMBER  HEADER RECORD!!!!!!!"


@dataclass(frozen=True)
class XportDecodeOptions:
    """Decode-time options for XPORT members.

    Attributes:
        encoding: Encoding for character values and labels.
    """

    encoding: str = DEFAULT_XPORT_ENCODING


def decode_xport(path: Path, options: XportDecodeOptions | None = None) -> DecodedPayload:
    """Decode every member of an XPORT library.

    Args:
        path: Local XPORT file.
        options: Decode options; defaults to ISO-8859-1 text.

    Returns:
        ``SinglePayload`` for one member, otherwise ``MultiplePayload``
        keyed by lower-cased member name.

    Raises:
        DecodeError: If the file is absent, empty, truncated, or not a valid library.
    """
    resolved_options = options or XportDecodeOptions()
    raw = _read_payload(path)
    members = [
        _decode_member(member, resolved_options, path) for member in split_xport_members(raw, path)
    ]
    _LOGGER.info(
        "xport_decoded",
        path=str(path),
        members=[table.name for table in members],
    )
    if len(members) == 1:
        return SinglePayload(members[0])
    return MultiplePayload({table.name: table for table in members})


def split_xport_members(raw: bytes, source: Path | str = "<bytes>") -> list[bytes]:
    """Split an XPORT library into standalone single-member libraries.

    Each returned chunk is prefixed with the original library header so
    it can be read on its own.

    Raises:
        DecodeError: If the library header or member headers are missing.
    """
    if not raw.startswith(LIBRARY_HEADER_PREFIX):
        raise DecodeError(
            f"Failed to decode {source}: missing XPORT library header. "
            "Check that the download is a SAS transport file."
        )
    library_header = raw[:LIBRARY_HEADER_LENGTH]
    offsets = [
        offset
        for offset in range(LIBRARY_HEADER_LENGTH, len(raw), RECORD_LENGTH)
        if raw.startswith(MEMBER_HEADER_PREFIX, offset)
    ]
    if not offsets:
        raise DecodeError(
            f"Failed to decode {source}: XPORT library has no members. "
            "Re-download the file."
        )
    ends = offsets[1:] + [len(raw)]
    return [library_header + raw[start:end] for start, end in zip(offsets, ends)]


def _read_payload(path: Path) -> bytes:
    try:
        raw = Path(path).read_bytes()
    except OSError as error:
        raise DecodeError(
            f"Failed to read XPORT file {path}: {error}. Re-download the file."
        ) from error
    if not raw:
        raise DecodeError(f"Failed to decode {path}: file is empty. Re-download the file.")
    if len(raw) % RECORD_LENGTH:
        raise DecodeError(
            f"Failed to decode {path}: {len(raw)} bytes is not a whole number of "
            f"{RECORD_LENGTH}-byte records, so the file is truncated. Re-download the file."
        )
    return raw


def _decode_member(member: bytes, options: XportDecodeOptions, source: Path) -> DecodedTable:
    try:
        with pd.read_sas(
            io.BytesIO(member),
            format="xport",
            encoding=options.encoding,
            iterator=True,
        ) as reader:
            name = str(reader.member_info["set_name"]).strip().lower()
            labels = _label_frame(reader.fields, options.encoding)
            if reader.nobs == 0:
                data = pd.DataFrame(
                    {column: pd.Series(dtype="object") for column in reader.columns}
                )
            else:
                data = reader.read()
    except (ValueError, KeyError, TypeError, struct.error) as error:
        raise DecodeError(
            f"Failed to decode XPORT member in {source}: {error}. "
            "Check that the download is a SAS transport v5 file."
        ) from error
    return DecodedTable(name=name, data=_coerce_subject_id(data), labels=labels)


def _label_frame(fields: list[dict[str, Any]], encoding: str) -> pd.DataFrame:
    """Build the variable label table from namestr fields."""
    rows = [
        {
            "name": _text(field["name"], encoding),
            "label": _text(field["label"], encoding),
            "type": str(field["ntype"]),
            "width": int(field["field_length"]),
            "format": _text(field["nform"], encoding),
        }
        for field in fields
    ]
    return pd.DataFrame(rows, columns=list(LABEL_COLUMNS))


def _text(value: bytes | str, encoding: str) -> str:
    if isinstance(value, bytes):
        return value.decode(encoding).strip()
    return value.strip()


def _coerce_subject_id(data: pd.DataFrame) -> pd.DataFrame:
    """Store integral subject ids as nullable integers."""
    if SUBJECT_ID_COLUMN not in data.columns:
        return data
    subject_ids = data[SUBJECT_ID_COLUMN]
    if not pd.api.types.is_float_dtype(subject_ids):
        return data
    present = subject_ids.dropna()
    if not (present % 1 == 0).all():
        return data
    data[SUBJECT_ID_COLUMN] = subject_ids.astype("Int64")
    return data
