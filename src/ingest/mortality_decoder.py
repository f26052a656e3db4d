"""Linked mortality fixed-width decoder.

The public-use linked mortality files are fixed-width text with one
respondent per line. Column positions are 1-based and inclusive.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from core.constants import (
    DEFAULT_XPORT_ENCODING,
    LABEL_COLUMNS,
    MORTALITY_NULL_TOKEN,
    MORTALITY_TABLE_STEM,
)
from core.errors import DecodeError
from core.logging_config import get_logger
from ingest.decoded_payload import DecodedTable, SinglePayload

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class MortalityField:
    """One fixed-width column.

    Attributes:
        name: Variable name.
        start: First character position, 1-based.
        end: Last character position, inclusive.
        kind: ``i`` for integer, ``c`` for text.
        label: Variable description.
    """

    name: str
    start: int
    end: int
    kind: str
    label: str

    @property
    def width(self) -> int:
        return self.end - self.start + 1


MORTALITY_FIELDS = (
    MortalityField("SEQN", 1, 5, "i", "NHANES Respondent Sequence Number"),
    MortalityField("ELIGSTAT", 15, 15, "i", "Eligibility Status for Mortality Follow-up"),
    MortalityField("MORTSTAT", 16, 16, "i", "Final Mortality Status"),
    MortalityField("CAUSEAVL", 17, 17, "i", "Cause of Death Data Available"),
    MortalityField(
        "UCOD_LEADING", 18, 20, "c", "Underlying Cause of Death Recode from UCOD_113 Leading Causes"
    ),
    MortalityField("DIABETES", 21, 21, "i", "Diabetes flag from multiple cause of death"),
    MortalityField("HYPERTEN", 22, 22, "i", "Hypertension flag from multiple cause of death"),
    MortalityField("PERMTH_INT", 44, 46, "i", "Person Months of Follow-up from Interview Date"),
    MortalityField("PERMTH_EXM", 47, 49, "i", "Person Months of Follow-up from MEC/Exam Date"),
    MortalityField("MORTSRCE_NDI", 50, 50, "i", "Mortality Source: NDI Match"),
    MortalityField("MORTSRCE_CMS", 51, 51, "i", "Mortality Source: CMS Information"),
    MortalityField("MORTSRCE_SSA", 52, 52, "i", "Mortality Source: SSA Information"),
    MortalityField("MORTSRCE_DC", 53, 53, "i", "Mortality Source: Death Certificate Match"),
    MortalityField("MORTSRCE_DCL", 54, 54, "i", "Mortality Source: Data Collection"),
)
RECORD_WIDTH = max(field.end for field in MORTALITY_FIELDS)


def decode_mortality(path: Path, encoding: str = DEFAULT_XPORT_ENCODING) -> SinglePayload:
    """Decode a linked mortality file into the ``death`` table.

    Args:
        path: Local fixed-width file.
        encoding: Text encoding of the file.

    Returns:
        Single payload holding the ``death`` table and its labels.

    Raises:
        DecodeError: If the file is absent, empty, or has malformed lines.
    """
    try:
        text = Path(path).read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as error:
        raise DecodeError(
            f"Failed to read mortality file {path}: {error}. Re-download the file."
        ) from error
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise DecodeError(f"Failed to decode {path}: file is empty. Re-download the file.")
    columns: dict[str, list[object]] = {field.name: [] for field in MORTALITY_FIELDS}
    for line_number, line in enumerate(lines, 1):
        if len(line) < RECORD_WIDTH:
            raise DecodeError(
                f"Failed to decode {path} line {line_number}: expected at least "
                f"{RECORD_WIDTH} characters, got {len(line)}. Re-download the file."
            )
        for field in MORTALITY_FIELDS:
            columns[field.name].append(_parse_value(field, line, line_number, path))
    data = pd.DataFrame(
        {
            field.name: pd.array(columns[field.name], dtype=_dtype(field))
            for field in MORTALITY_FIELDS
        }
    )
    _LOGGER.info("mortality_decoded", path=str(path), row_count=len(data))
    return SinglePayload(DecodedTable(MORTALITY_TABLE_STEM, data, mortality_labels()))


def mortality_labels() -> pd.DataFrame:
    """Return the label table of the mortality schema."""
    rows = [
        {
            "name": field.name,
            "label": field.label,
            "type": "numeric" if field.kind == "i" else "char",
            "width": field.width,
            "format": "",
        }
        for field in MORTALITY_FIELDS
    ]
    return pd.DataFrame(rows, columns=list(LABEL_COLUMNS))


def _parse_value(field: MortalityField, line: str, line_number: int, path: Path) -> object:
    raw_value = line[field.start - 1 : field.end].strip()
    if not raw_value or raw_value == MORTALITY_NULL_TOKEN:
        return None
    if field.kind == "c":
        return raw_value
    try:
        return int(raw_value)
    except ValueError as error:
        raise DecodeError(
            f"Failed to decode {path} line {line_number}: {field.name} value "
            f"'{raw_value}' is not an integer. Re-download the file."
        ) from error


def _dtype(field: MortalityField) -> str:
    return "Int64" if field.kind == "i" else "string"
