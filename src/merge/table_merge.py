"""Per-respondent table merge.

Tables with one row per respondent are left-joined onto demographics by
``SEQN``. Tables with repeated respondent ids cannot be joined without
changing the row count, so they are returned alongside the merged table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import pandas as pd

from core.constants import BASE_TABLE_STEM, SUBJECT_ID_COLUMN
from core.errors import AmbiguousJoinKeyError
from core.logging_config import get_logger
from store.dataset_store import load_table

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class CohortMerge:
    """Merge result when some requested tables repeat respondent ids.

    Attributes:
        cohort: Demographics joined with every one-row-per-respondent table.
        excluded: Unmerged tables keyed by stem.
    """

    cohort: pd.DataFrame
    excluded: dict[str, pd.DataFrame] = field(default_factory=dict)


def normalize_stems(stems: Iterable[str]) -> list[str]:
    """Clean requested stems, keeping first-seen order.

    Stems are stripped and lower-cased; blanks, repeats, and the
    demographics stem are dropped.
    """
    normalized: list[str] = []
    for stem in stems:
        cleaned = stem.strip().lower()
        if not cleaned or cleaned == BASE_TABLE_STEM or cleaned in normalized:
            continue
        normalized.append(cleaned)
    return normalized


def merge_tables(
    stems: Iterable[str],
    wave_start_year: int,
    data_dir: Path | str,
) -> pd.DataFrame | CohortMerge:
    """Merge stored wave tables onto demographics by ``SEQN``.

    Args:
        stems: Table stems without wave letter; ``demo`` is always loaded.
        wave_start_year: First year of the wave.
        data_dir: Directory holding the ``nhanes_*`` wave directories.

    Returns:
        The merged table, or a ``CohortMerge`` when any requested table
        has repeated ``SEQN`` values.

    Raises:
        StoredFileNotFoundError: If any requested table is missing.
        AmbiguousJoinKeyError: If a table lacks ``SEQN`` or shares another
            column name with the merged table.
    """
    requested = normalize_stems(stems)
    cohort = load_table(BASE_TABLE_STEM, wave_start_year, data_dir)
    _require_subject_id(cohort, BASE_TABLE_STEM)
    tables = {stem: load_table(stem, wave_start_year, data_dir) for stem in requested}
    excluded: dict[str, pd.DataFrame] = {}
    for stem, table in tables.items():
        _require_subject_id(table, stem)
        if table[SUBJECT_ID_COLUMN].duplicated().any():
            excluded[stem] = table
            _LOGGER.warning(
                "table_excluded_from_merge",
                stem=stem,
                wave_start_year=wave_start_year,
                row_count=len(table),
                subject_count=int(table[SUBJECT_ID_COLUMN].nunique()),
            )
            continue
        _require_disjoint_columns(cohort, table, stem)
        cohort = cohort.merge(table, how="left", on=SUBJECT_ID_COLUMN, validate="many_to_one")
    cohort = cohort.sort_values(SUBJECT_ID_COLUMN, kind="stable").reset_index(drop=True)
    _LOGGER.info(
        "tables_merged",
        wave_start_year=wave_start_year,
        merged=[stem for stem in requested if stem not in excluded],
        excluded=sorted(excluded),
        row_count=len(cohort),
        column_count=len(cohort.columns),
    )
    if excluded:
        return CohortMerge(cohort=cohort, excluded=excluded)
    return cohort


def _require_subject_id(table: pd.DataFrame, stem: str) -> None:
    if SUBJECT_ID_COLUMN not in table.columns:
        raise AmbiguousJoinKeyError(
            f"Cannot merge table '{stem}': column {SUBJECT_ID_COLUMN} is missing. "
            "Load the table on its own instead."
        )


def _require_disjoint_columns(cohort: pd.DataFrame, table: pd.DataFrame, stem: str) -> None:
    shared = sorted((set(cohort.columns) & set(table.columns)) - {SUBJECT_ID_COLUMN})
    if shared:
        raise AmbiguousJoinKeyError(
            f"Cannot merge table '{stem}' on {SUBJECT_ID_COLUMN}: columns {shared} "
            "also exist in the merged table. Drop or rename them and merge again."
        )
