"""Unit tests for the wave table store."""

from __future__ import annotations

import pandas as pd
import pytest

from core.errors import StoreWriteError, StoredFileNotFoundError
from ingest.decoded_payload import DecodedTable
from ingest.mortality_decoder import mortality_labels
from store import dataset_store
from store.dataset_store import DatasetStore, load_table

WAVE = "2003_2004"


def _labels(*names: str) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "name": list(names),
            "label": [f"{name} label" for name in names],
            "type": ["numeric"] * len(names),
            "width": [8] * len(names),
            "format": [""] * len(names),
        }
    )


def test_write_and_read_preserve_nullable_types(tmp_path) -> None:
    """Int64, string, and float columns should survive a round trip."""
    store = DatasetStore(tmp_path)
    table = pd.DataFrame(
        {
            "SEQN": pd.array([1, 2, None], dtype="Int64"),
            "UCOD_LEADING": pd.array(["001", None, "010"], dtype="string"),
            "BMXBMI": [22.5, None, 31.0],
        }
    )

    store.write(table, WAVE, "death")
    loaded = store.read(WAVE, "death")

    assert [str(dtype) for dtype in loaded.dtypes] == ["Int64", "string", "float64"]
    assert loaded["SEQN"].isna().tolist() == [False, False, True]
    assert loaded["UCOD_LEADING"].iloc[2] == "010"


def test_write_uses_wave_layout(tmp_path) -> None:
    """Artifacts should live under the wave directory with label suffixes."""
    store = DatasetStore(tmp_path)

    data_path, label_path = store.write_decoded(
        WAVE, DecodedTable("bpx_c", pd.DataFrame({"SEQN": [1]}), _labels("SEQN"))
    )

    assert data_path == tmp_path.resolve() / "nhanes_2003_2004" / "bpx_c.parquet"
    assert label_path.name == "bpx_c_label.parquet"


def test_read_prefers_lettered_stem(tmp_path) -> None:
    """The wave-lettered artifact wins over the bare stem."""
    store = DatasetStore(tmp_path)
    store.write(pd.DataFrame({"SEQN": [1]}), WAVE, "demo")
    store.write(pd.DataFrame({"SEQN": [2]}), WAVE, "demo_c")

    assert store.read(WAVE, "demo", "c")["SEQN"].tolist() == [2]


def test_read_falls_back_to_bare_stem(tmp_path) -> None:
    """Files published without a wave letter are found by bare stem."""
    store = DatasetStore(tmp_path)
    store.write(pd.DataFrame({"SEQN": [7]}), WAVE, "death")

    assert store.read(WAVE, "death", "c")["SEQN"].tolist() == [7]


def test_read_missing_names_both_candidates(tmp_path) -> None:
    """A miss should report every searched path."""
    store = DatasetStore(tmp_path)

    with pytest.raises(StoredFileNotFoundError, match="bpx_c.parquet.*bpx.parquet"):
        store.read(WAVE, "bpx", "c")


def test_missing_table_is_file_not_found(tmp_path) -> None:
    """Store misses are also FileNotFoundError for generic callers."""
    with pytest.raises(FileNotFoundError):
        DatasetStore(tmp_path).read(WAVE, "bpx")


def test_write_replaces_existing_artifact(tmp_path) -> None:
    """Rewrites replace the stored table and leave no temp files."""
    store = DatasetStore(tmp_path)
    store.write(pd.DataFrame({"SEQN": [1]}), WAVE, "bpx")
    store.write(pd.DataFrame({"SEQN": [1, 2]}), WAVE, "bpx")

    assert len(store.read(WAVE, "bpx")) == 2
    assert sorted(path.name for path in store.wave_dir(WAVE).iterdir()) == ["bpx.parquet"]


def test_load_table_returns_label_view(tmp_path) -> None:
    """Label loads should only expose name and label."""
    store = DatasetStore(tmp_path)
    store.write(mortality_labels(), WAVE, "death", is_label=True)

    labels = load_table("DEATH ", 2003, tmp_path, want_labels=True)

    assert list(labels.columns) == ["name", "label"] and len(labels) == 14


def test_write_reports_unwritable_wave_directory(tmp_path) -> None:
    """Filesystem failures should surface as store write errors naming the path."""
    store = DatasetStore(tmp_path)
    store.wave_dir(WAVE).write_text("not a directory", encoding="utf-8")

    with pytest.raises(StoreWriteError, match="bpx.parquet"):
        store.write(pd.DataFrame({"SEQN": [1]}), WAVE, "bpx")


def test_write_decoded_writes_labels_before_data(tmp_path, monkeypatch) -> None:
    """The data artifact is written last so its presence implies labels."""
    written: list[str] = []
    real_write = dataset_store.write_table_file

    def record_write(table, path):
        written.append(path.name)
        real_write(table, path)

    monkeypatch.setattr(dataset_store, "write_table_file", record_write)
    DatasetStore(tmp_path).write_decoded(
        WAVE, DecodedTable("bpx", pd.DataFrame({"SEQN": [1]}), _labels("SEQN"))
    )

    assert written == ["bpx_label.parquet", "bpx.parquet"]


def test_write_tables_rolls_back_earlier_tables(tmp_path, monkeypatch) -> None:
    """A failure on a later table should remove the tables already written."""
    real_write = dataset_store.write_table_file

    def fail_second_table(table, path):
        if path.name.startswith("paxraw"):
            raise StoreWriteError(f"Failed to write stored table {path}.")
        real_write(table, path)

    monkeypatch.setattr(dataset_store, "write_table_file", fail_second_table)
    store = DatasetStore(tmp_path)
    tables = [
        DecodedTable("bpx", pd.DataFrame({"SEQN": [1]}), _labels("SEQN")),
        DecodedTable("paxraw", pd.DataFrame({"SEQN": [1, 1]}), _labels("SEQN")),
    ]

    with pytest.raises(StoreWriteError):
        store.write_tables(WAVE, tables)

    assert list(store.wave_dir(WAVE).glob("*.parquet")) == []
