"""Python SDK for NHANES wave operations.

This module exposes high-level APIs for listing, downloading, loading,
and merging wave tables under one configured data root.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Iterable

import pandas as pd

from core.config import NhanesConfig
from core.types import CatalogEntry, FileOutcome, RemoteFileEntry, WaveConfig, WaveRunReport
from ingest.catalog_listing import fetch_catalog
from ingest.listing import TextFetcher
from ingest.pipeline import download_wave, fetch_and_store, list_wave_files
from ingest.transport import Downloader
from ingest.wave_setup import setup_wave
from ingest.xport_decoder import XportDecodeOptions
from merge.label_merge import merge_labels
from merge.table_merge import CohortMerge, merge_tables
from store.dataset_store import DatasetStore, load_table


class NhanesClient:
    """Primary SDK entry point for wave workflows."""

    def __init__(
        self,
        config: NhanesConfig | None = None,
        *,
        fetch_text: TextFetcher | None = None,
        downloader: Downloader | None = None,
        options: XportDecodeOptions | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            fetch_text: Optional replacement for listing and catalog reads.
            downloader: Optional replacement for file downloads.
            options: XPORT decode options.
        """
        self._config = config or NhanesConfig.from_env()
        self._fetch_text = fetch_text
        self._downloader = downloader
        self._options = options or XportDecodeOptions()
        self._store = DatasetStore(self._config.data_root)

    @property
    def config(self) -> NhanesConfig:
        return self._config

    @property
    def store(self) -> DatasetStore:
        return self._store

    def setup_wave(self, wave_start_year: int) -> WaveConfig:
        """Prepare the wave directory under the data root.

        Args:
            wave_start_year: Odd first year of the wave.

        Returns:
            Resolved wave configuration.
        """
        self._config.data_root.mkdir(parents=True, exist_ok=True)
        return setup_wave(self._config.data_root, wave_start_year, self._config)

    def list_wave_files(
        self,
        wave_start_year: int,
        save_file_list: bool = True,
    ) -> list[RemoteFileEntry]:
        """List a wave's remote data and mortality files.

        Args:
            wave_start_year: Odd first year of the wave.
            save_file_list: Write the listing snapshot into the wave directory.

        Returns:
            Listed remote files.
        """
        return list_wave_files(
            self.setup_wave(wave_start_year),
            save_file_list,
            fetch_text=self._fetch_text,
            timeout=self._config.request_timeout,
        )

    def fetch_and_store(self, url: str, wave_start_year: int) -> FileOutcome:
        """Download, decode, and store one remote file.

        Args:
            url: Remote file URL.
            wave_start_year: Odd first year of the wave the file belongs to.

        Returns:
            File outcome.
        """
        return fetch_and_store(
            url,
            self.setup_wave(wave_start_year),
            store=self._store,
            max_attempts=self._config.max_attempts,
            timeout=self._config.request_timeout,
            downloader=self._downloader,
            options=self._options,
        )

    def download_wave(
        self,
        wave_start_year: int,
        urls: list[str] | None = None,
        workers: int | None = None,
        skip_existing: bool = True,
    ) -> WaveRunReport:
        """Download and store every file of one wave.

        Args:
            wave_start_year: Odd first year of the wave.
            urls: Files to process; defaults to the wave listing.
            workers: Worker threads; defaults to the configured count.
            skip_existing: Skip files whose tables are already stored.

        Returns:
            Per-file outcomes for the run.
        """
        return download_wave(
            self.setup_wave(wave_start_year),
            urls,
            workers=workers or self._config.workers,
            skip_existing=skip_existing,
            max_attempts=self._config.max_attempts,
            timeout=self._config.request_timeout,
            store=self._store,
            downloader=self._downloader,
            fetch_text=self._fetch_text,
            options=self._options,
        )

    def load_table(
        self,
        stem: str,
        wave_start_year: int,
        want_labels: bool = False,
    ) -> pd.DataFrame:
        """Load one stored table or its labels.

        Args:
            stem: Table stem without wave letter.
            wave_start_year: Odd first year of the wave.
            want_labels: Return the ``name, label`` view instead of data.

        Returns:
            Stored table.
        """
        return load_table(stem, wave_start_year, self._config.data_root, want_labels)

    def merge_tables(
        self,
        stems: Iterable[str],
        wave_start_year: int,
    ) -> pd.DataFrame | CohortMerge:
        """Merge stored tables onto demographics by respondent id."""
        return merge_tables(stems, wave_start_year, self._config.data_root)

    def merge_labels(self, stems: Iterable[str], wave_start_year: int) -> pd.DataFrame:
        """Stack label tables of demographics and the requested stems."""
        return merge_labels(stems, wave_start_year, self._config.data_root)

    def catalog(self) -> list[CatalogEntry]:
        """Fetch the published data file catalog."""
        return fetch_catalog(
            self._config.catalog_url,
            fetch_text=self._fetch_text,
            timeout=self._config.request_timeout,
        )

    def with_data_root(self, data_root: str | Path) -> "NhanesClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        updated_config = replace(self._config, data_root=resolved_root)
        return NhanesClient(
            updated_config,
            fetch_text=self._fetch_text,
            downloader=self._downloader,
            options=self._options,
        )
