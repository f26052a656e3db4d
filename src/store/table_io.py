"""Parquet table persistence helpers.

This module isolates pyarrow reads and writes of single tables.
Writes land in a temporary sibling file and are promoted atomically.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from core.errors import DecodeError, StoreWriteError


def write_table_file(table: pd.DataFrame, path: Path) -> None:
    """Write a data frame to Parquet, replacing any existing file.

    Args:
        table: Table to persist; the index is not stored.
        path: Destination ``.parquet`` path.

    Raises:
        StoreWriteError: If the table cannot be converted or written.
    """
    temp_path = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        arrow_table = pa.Table.from_pandas(table, preserve_index=False)
        pq.write_table(arrow_table, temp_path)
        os.replace(temp_path, path)
    except (OSError, pa.ArrowException) as error:
        raise StoreWriteError(
            f"Failed to write stored table {path}: {error}. "
            "Check free disk space and permissions, then download the file again."
        ) from error
    finally:
        if temp_path.exists():
            temp_path.unlink()


def read_table_file(path: Path) -> pd.DataFrame:
    """Read a Parquet table written by :func:`write_table_file`.

    Raises:
        FileNotFoundError: If the file is absent.
        DecodeError: If the file is not valid Parquet.
    """
    try:
        arrow_table = pq.read_table(path)
    except pa.ArrowInvalid as error:
        raise DecodeError(
            f"Failed to read stored table {path}: {error}. "
            "Delete the file and download the wave again."
        ) from error
    return arrow_table.to_pandas()
