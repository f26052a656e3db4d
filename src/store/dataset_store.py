"""Wave-partitioned table store.

Tables live under ``<data_root>/nhanes_<start>_<end>/`` as
``<stem>.parquet`` with variable labels in ``<stem>_label.parquet``.
Lookups prefer the wave-lettered stem (``demo_c``) over the bare stem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from core import waves
from core.constants import LABEL_SUFFIX, TABLE_FILE_EXTENSION, WAVE_DIR_PREFIX
from core.errors import StoredFileNotFoundError
from core.logging_config import get_logger
from ingest.decoded_payload import DecodedTable
from store.table_io import read_table_file, write_table_file

_LOGGER = get_logger(__name__)

LABEL_VIEW_COLUMNS = ["name", "label"]


class DatasetStore:
    """Local Parquet store keyed by wave label and table stem."""

    def __init__(self, data_root: Path | str) -> None:
        self._data_root = Path(data_root).expanduser().resolve()

    @property
    def data_root(self) -> Path:
        return self._data_root

    def wave_dir(self, wave_label: str) -> Path:
        """Return the directory holding one wave's tables."""
        return self._data_root / f"{WAVE_DIR_PREFIX}{wave_label}"

    def table_path(self, wave_label: str, stem: str, is_label: bool = False) -> Path:
        """Return the artifact path for an exact stem."""
        suffix = LABEL_SUFFIX if is_label else ""
        return self.wave_dir(wave_label) / f"{stem.lower()}{suffix}{TABLE_FILE_EXTENSION}"

    def write(
        self,
        table: pd.DataFrame,
        wave_label: str,
        stem: str,
        is_label: bool = False,
    ) -> Path:
        """Persist one table, replacing an earlier artifact atomically.

        Args:
            table: Table to store.
            wave_label: Wave label, e.g. ``1999_2000``.
            stem: Table stem, stored lower-cased.
            is_label: Whether the table is a variable label table.

        Returns:
            Path of the written artifact.
        """
        path = self.table_path(wave_label, stem, is_label)
        write_table_file(table, path)
        return path

    def write_decoded(self, wave_label: str, decoded: DecodedTable) -> tuple[Path, Path]:
        """Persist a decoded table and its label table.

        The label table is written first so that a data artifact always has
        its labels. If the data write fails the label artifact is removed.

        Returns:
            Paths of the data and label artifacts.

        Raises:
            StoreWriteError: If either artifact cannot be written.
        """
        label_path = self.write(decoded.labels, wave_label, decoded.name, is_label=True)
        try:
            data_path = self.write(decoded.data, wave_label, decoded.name)
        except Exception:
            label_path.unlink(missing_ok=True)
            raise
        _LOGGER.info(
            "table_stored",
            wave_label=wave_label,
            stem=decoded.name,
            row_count=len(decoded.data),
            path=str(data_path),
        )
        return data_path, label_path

    def write_tables(self, wave_label: str, tables: Iterable[DecodedTable]) -> list[Path]:
        """Persist every table of one decoded file, or none of them.

        Args:
            wave_label: Wave label, e.g. ``1999_2000``.
            tables: Decoded tables of one downloaded file.

        Returns:
            Paths of every written artifact.

        Raises:
            StoreWriteError: If any artifact cannot be written. Artifacts
                already written for the file are removed first.
        """
        written: list[Path] = []
        try:
            for table in tables:
                written.extend(self.write_decoded(wave_label, table))
        except Exception:
            if written:
                self.discard(written)
            raise
        return written

    def discard(self, paths: Iterable[Path]) -> None:
        """Remove stored artifacts, ignoring ones already gone."""
        removed = list(paths)
        for path in removed:
            path.unlink(missing_ok=True)
        _LOGGER.warning("tables_discarded", paths=[str(path) for path in removed])

    def candidate_paths(
        self,
        wave_label: str,
        stem: str,
        wave_letter: str | None = None,
        is_label: bool = False,
    ) -> list[Path]:
        """Return lookup paths in preference order."""
        stems = [f"{stem}_{wave_letter}", stem] if wave_letter else [stem]
        return [self.table_path(wave_label, candidate, is_label) for candidate in stems]

    def resolve(
        self,
        wave_label: str,
        stem: str,
        wave_letter: str | None = None,
        is_label: bool = False,
    ) -> Path:
        """Return the first existing artifact path.

        Raises:
            StoredFileNotFoundError: If no candidate exists.
        """
        candidates = self.candidate_paths(wave_label, stem, wave_letter, is_label)
        for path in candidates:
            if path.exists():
                return path
        searched = ", ".join(str(path) for path in candidates)
        raise StoredFileNotFoundError(
            f"Stored table '{stem}' not found for wave {wave_label}; searched {searched}. "
            "Download the wave files before loading tables."
        )

    def read(
        self,
        wave_label: str,
        stem: str,
        wave_letter: str | None = None,
        is_label: bool = False,
    ) -> pd.DataFrame:
        """Load one stored table.

        Raises:
            StoredFileNotFoundError: If no candidate exists.
        """
        return read_table_file(self.resolve(wave_label, stem, wave_letter, is_label))

    def exists(
        self,
        wave_label: str,
        stem: str,
        wave_letter: str | None = None,
        is_label: bool = False,
    ) -> bool:
        """Return whether any candidate artifact exists."""
        candidates = self.candidate_paths(wave_label, stem, wave_letter, is_label)
        return any(path.exists() for path in candidates)


def load_table(
    stem: str,
    wave_start_year: int,
    data_dir: Path | str,
    want_labels: bool = False,
) -> pd.DataFrame:
    """Load a stored wave table or its labels.

    Args:
        stem: Table stem without wave letter, e.g. ``demo``.
        wave_start_year: First year of the wave.
        data_dir: Directory holding the ``nhanes_*`` wave directories.
        want_labels: Return the ``name, label`` view of the label table.

    Returns:
        Stored table.

    Raises:
        InvalidWaveYearError: If the year is not a wave start.
        StoredFileNotFoundError: If the table was never stored.
    """
    store = DatasetStore(data_dir)
    table = store.read(
        waves.wave_label(wave_start_year),
        stem.strip().lower(),
        waves.wave_letter(wave_start_year),
        is_label=want_labels,
    )
    if want_labels:
        return table[LABEL_VIEW_COLUMNS]
    return table
