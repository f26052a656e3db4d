"""Public SDK surface for nhanes-etl.

This module provides a stable import path for library users.
It re-exports the primary client, typed models, and merge helpers.
"""

from __future__ import annotations

from core.config import NhanesConfig
from core.types import (
    CatalogEntry,
    FileOutcome,
    FileStatus,
    RemoteFileEntry,
    WaveConfig,
    WaveRunReport,
)
from ingest.catalog_listing import catalog_to_frame
from ingest.decoded_payload import DecodedTable, MultiplePayload, SinglePayload
from ingest.pipeline import download_wave, fetch_and_store, list_wave_files
from ingest.wave_setup import setup_wave
from ingest.xport_decoder import XportDecodeOptions
from merge.label_merge import merge_labels
from merge.table_merge import CohortMerge, merge_tables
from store.dataset_sdk import NhanesClient
from store.dataset_store import DatasetStore, load_table

__all__ = [
    "CatalogEntry",
    "CohortMerge",
    "DatasetStore",
    "DecodedTable",
    "FileOutcome",
    "FileStatus",
    "MultiplePayload",
    "NhanesClient",
    "NhanesConfig",
    "RemoteFileEntry",
    "SinglePayload",
    "WaveConfig",
    "WaveRunReport",
    "XportDecodeOptions",
    "catalog_to_frame",
    "download_wave",
    "fetch_and_store",
    "list_wave_files",
    "load_table",
    "merge_labels",
    "merge_tables",
    "setup_wave",
]
