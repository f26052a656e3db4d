"""Variable label dictionary assembly."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from core.constants import BASE_TABLE_STEM
from merge.table_merge import normalize_stems
from store.dataset_store import LABEL_VIEW_COLUMNS, load_table


def merge_labels(
    stems: Iterable[str],
    wave_start_year: int,
    data_dir: Path | str,
) -> pd.DataFrame:
    """Stack label tables of ``demo`` and the requested stems.

    The first definition of a variable name wins, in request order, so
    ``SEQN`` is described by the demographics label.

    Args:
        stems: Table stems without wave letter.
        wave_start_year: First year of the wave.
        data_dir: Directory holding the ``nhanes_*`` wave directories.

    Returns:
        ``name, label`` rows sorted by name.

    Raises:
        StoredFileNotFoundError: If any label table is missing.
    """
    requested = [BASE_TABLE_STEM, *normalize_stems(stems)]
    frames = [
        load_table(stem, wave_start_year, data_dir, want_labels=True) for stem in requested
    ]
    stacked = pd.concat(frames, ignore_index=True)[LABEL_VIEW_COLUMNS]
    unique_labels = stacked.drop_duplicates(subset="name", keep="first")
    return unique_labels.sort_values("name", kind="stable").reset_index(drop=True)
