"""Unit tests for per-respondent table merges."""

from __future__ import annotations

import pandas as pd
import pytest

from core.errors import AmbiguousJoinKeyError, StoredFileNotFoundError
from merge.table_merge import CohortMerge, merge_tables, normalize_stems
from store.dataset_store import DatasetStore

WAVE = "2003_2004"


def _seqn(*values: int) -> pd.Series:
    return pd.Series(list(values), dtype="Int64")


@pytest.fixture
def data_dir(tmp_path):
    store = DatasetStore(tmp_path)
    store.write(
        pd.DataFrame({"SEQN": _seqn(3, 1, 2), "RIDAGEYR": [70.0, 45.0, 12.0]}), WAVE, "demo_c"
    )
    store.write(pd.DataFrame({"SEQN": _seqn(1, 3), "BPXSY1": [122.0, 104.0]}), WAVE, "bpx_c")
    store.write(
        pd.DataFrame({"SEQN": _seqn(1, 1, 2), "RXDDRUG": ["A", "B", "C"]}), WAVE, "rxq_rx_c"
    )
    store.write(pd.DataFrame({"SEQN": _seqn(1, 2), "MORTSTAT": _seqn(0, 1)}), WAVE, "death")
    store.write(pd.DataFrame({"SEQN": _seqn(1), "RIDAGEYR": [45.0]}), WAVE, "dup_c")
    store.write(pd.DataFrame({"ID": [1]}), WAVE, "nokey_c")
    return tmp_path


def test_normalize_stems_cleans_and_deduplicates() -> None:
    """Stems are lower-cased and demo, blanks, and repeats are dropped."""
    assert normalize_stems([" BPX", "demo", "", "bpx", "Death"]) == ["bpx", "death"]


def test_merge_tables_left_joins_unique_tables(data_dir) -> None:
    """Unique-key tables join onto demo and keep its row count."""
    merged = merge_tables(["bpx", "death"], 2003, data_dir)

    assert isinstance(merged, pd.DataFrame)
    assert merged["SEQN"].tolist() == [1, 2, 3]
    assert list(merged.columns) == ["SEQN", "RIDAGEYR", "BPXSY1", "MORTSTAT"]
    assert merged["BPXSY1"].isna().tolist() == [False, True, False]


def test_merge_tables_returns_only_demo_without_stems(data_dir) -> None:
    """An empty request returns the demographics table."""
    merged = merge_tables([], 2003, data_dir)

    assert len(merged) == 3 and list(merged.columns) == ["SEQN", "RIDAGEYR"]


def test_merge_tables_excludes_repeated_key_tables(data_dir) -> None:
    """Tables with repeated SEQN are returned unmerged."""
    result = merge_tables(["rxq_rx", "bpx"], 2003, data_dir)

    assert isinstance(result, CohortMerge)
    assert "BPXSY1" in result.cohort.columns and "RXDDRUG" not in result.cohort.columns
    assert list(result.excluded) == ["rxq_rx"] and len(result.excluded["rxq_rx"]) == 3


def test_merge_tables_fails_on_missing_stem(data_dir) -> None:
    """Any missing table aborts the merge."""
    with pytest.raises(StoredFileNotFoundError, match="hdl"):
        merge_tables(["bpx", "hdl"], 2003, data_dir)


def test_merge_tables_rejects_shared_non_key_columns(data_dir) -> None:
    """Column collisions other than SEQN are ambiguous."""
    with pytest.raises(AmbiguousJoinKeyError, match="RIDAGEYR"):
        merge_tables(["dup"], 2003, data_dir)


def test_merge_tables_requires_subject_id(data_dir) -> None:
    """Tables without SEQN cannot be joined."""
    with pytest.raises(AmbiguousJoinKeyError, match="SEQN"):
        merge_tables(["nokey"], 2003, data_dir)
