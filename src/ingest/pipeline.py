"""Wave download orchestration.

This module lists a wave's remote files, downloads each through the
retrying transport, decodes it, and promotes the decoded tables into
the dataset store. Per-file failures are collected, never raised.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from pathlib import Path, PurePosixPath
import tempfile

from core.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    MORTALITY_EXTENSION,
    MORTALITY_TABLE_STEM,
    XPORT_EXTENSION,
)
from core.errors import DecodeError, NhanesError, StoreWriteError
from core.logging_config import get_logger
from core.remote_uri import url_filename
from core.types import FileOutcome, FileStatus, RemoteFileEntry, WaveConfig, WaveRunReport
from ingest.decoded_payload import DecodedTable
from ingest.decoding import decoder_for
from ingest.listing import TextFetcher, list_files
from ingest.transport import Downloader, TransferStatus, fetch
from ingest.xport_decoder import XportDecodeOptions
from store.audit_io import read_fetch_record, write_fetch_record, write_file_specs
from store.dataset_store import DatasetStore

_LOGGER = get_logger(__name__)

DATA_NAME_FILTER = r"\.xpt$"


def list_wave_files(
    wave_config: WaveConfig,
    save_file_list: bool = True,
    *,
    fetch_text: TextFetcher | None = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> list[RemoteFileEntry]:
    """List the data and linked mortality files of one wave.

    Args:
        wave_config: Wave to list.
        save_file_list: Write the listing snapshot into the wave directory.
        fetch_text: Optional replacement for the network read.
        timeout: Per-request timeout in seconds.

    Returns:
        XPORT entries followed by mortality entries.

    Raises:
        ListingParseError: If a listing cannot be read or parsed.
    """
    data_entries = list_files(
        wave_config.remote_data_root,
        name_filter=DATA_NAME_FILTER,
        extensions=(XPORT_EXTENSION,),
        fetch_text=fetch_text,
        timeout=timeout,
    )
    mortality_entries = list_files(
        wave_config.remote_mortality_root,
        name_filter=f"NHANES_{wave_config.wave_label}",
        extensions=(MORTALITY_EXTENSION,),
        fetch_text=fetch_text,
        timeout=timeout,
    )
    entries = data_entries + mortality_entries
    if save_file_list:
        write_file_specs(wave_config, entries)
    return entries


def fetch_and_store(
    url: str,
    wave_config: WaveConfig,
    *,
    store: DatasetStore | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    downloader: Downloader | None = None,
    options: XportDecodeOptions | None = None,
) -> FileOutcome:
    """Download, decode, and store one remote file.

    Args:
        url: Remote ``.xpt`` or ``.dat`` file URL.
        wave_config: Wave the file belongs to.
        store: Target store; defaults to the wave's data directory.
        max_attempts: Transfer attempts before giving up.
        timeout: Per-request timeout in seconds.
        downloader: Optional replacement for the network download step.
        options: XPORT decode options.

    Returns:
        File outcome; transfer, decode, and store failures are reported here.

    Raises:
        UnsupportedFileTypeError: If the extension has no decoder. Raised
            before any network IO.
    """
    decoder = decoder_for(url)
    target_store = store or DatasetStore(wave_config.data_dir)
    with tempfile.TemporaryDirectory(prefix="nhanes-fetch-") as temp_dir:
        local_path = Path(temp_dir) / url_filename(url)
        result = fetch(url, local_path, max_attempts, timeout=timeout, downloader=downloader)
        if not result.ok:
            status = (
                FileStatus.TRANSFER_EXHAUSTED
                if result.status is TransferStatus.EXHAUSTED
                else FileStatus.FAILED
            )
            return FileOutcome(url, status, attempts=result.attempts, error=result.error)
        try:
            payload = decoder(local_path, options or XportDecodeOptions())
        except DecodeError as error:
            _LOGGER.error("file_decode_failed", url=url, error=str(error))
            return FileOutcome(url, FileStatus.FAILED, attempts=result.attempts, error=str(error))
        stems = tuple(table.name for table in payload.tables())
        try:
            _store_payload(target_store, wave_config, url, payload.tables())
        except (StoreWriteError, OSError) as error:
            _LOGGER.error("file_store_failed", url=url, error=str(error))
            return FileOutcome(url, FileStatus.FAILED, attempts=result.attempts, error=str(error))
    _LOGGER.info(
        "file_stored",
        url=url,
        wave_label=wave_config.wave_label,
        stems=list(stems),
        attempts=result.attempts,
    )
    return FileOutcome(url, FileStatus.COMPLETED, stems, attempts=result.attempts)


def download_wave(
    wave_config: WaveConfig,
    urls: list[str] | None = None,
    *,
    workers: int = 1,
    skip_existing: bool = True,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    store: DatasetStore | None = None,
    downloader: Downloader | None = None,
    fetch_text: TextFetcher | None = None,
    options: XportDecodeOptions | None = None,
) -> WaveRunReport:
    """Download and store every file of one wave.

    Args:
        wave_config: Wave to download.
        urls: Files to process; defaults to the wave listing.
        workers: Worker threads; ``1`` processes files in order.
        skip_existing: Skip files whose tables are already stored.
        max_attempts: Transfer attempts per file.
        timeout: Per-request timeout in seconds.
        store: Target store; defaults to the wave's data directory.
        downloader: Optional replacement for the network download step.
        fetch_text: Optional replacement for the listing read.
        options: XPORT decode options.

    Returns:
        Per-file outcomes for the run.

    Raises:
        ValueError: If ``workers`` is below 1.
        ListingParseError: If ``urls`` is omitted and listing fails.
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}.")
    if urls is None:
        entries = list_wave_files(wave_config, fetch_text=fetch_text, timeout=timeout)
        urls = [entry.url for entry in entries]
    target_store = store or DatasetStore(wave_config.data_dir)
    outcomes: list[FileOutcome] = []
    pending: list[str] = []
    for url in urls:
        stems = _stored_stems(target_store, wave_config.wave_label, url) if skip_existing else ()
        if stems:
            outcomes.append(FileOutcome(url, FileStatus.SKIPPED, stems))
        else:
            pending.append(url)
    process = partial(
        _process_file,
        wave_config=wave_config,
        store=target_store,
        max_attempts=max_attempts,
        timeout=timeout,
        downloader=downloader,
        options=options,
    )
    if workers == 1:
        outcomes.extend(process(url) for url in pending)
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(process, url) for url in pending]
            for future in as_completed(futures):
                outcomes.append(future.result())
    report = WaveRunReport(wave_config.wave_label, tuple(outcomes))
    _log_wave_completion(report, workers)
    return report


def stored_stem(url: str) -> str:
    """Return the store stem a remote file is expected to produce."""
    path = PurePosixPath(url_filename(url))
    if path.suffix.lower() == MORTALITY_EXTENSION:
        return MORTALITY_TABLE_STEM
    return path.stem.lower()


def _stored_stems(store: DatasetStore, wave_label: str, url: str) -> tuple[str, ...]:
    """Return the stems an earlier run stored for ``url``, or ``()`` if incomplete.

    The fetch record names the stems when one exists; otherwise the stem
    derived from the file name is checked.
    """
    recorded = read_fetch_record(store.wave_dir(wave_label), url)
    stems = recorded if recorded is not None else (stored_stem(url),)
    for stem in stems:
        if not store.exists(wave_label, stem) or not store.exists(
            wave_label, stem, is_label=True
        ):
            return ()
    return stems


def _store_payload(
    store: DatasetStore,
    wave_config: WaveConfig,
    url: str,
    tables: tuple[DecodedTable, ...],
) -> None:
    """Store decoded tables, then record the fetch; roll back on failure."""
    written = store.write_tables(wave_config.wave_label, tables)
    try:
        write_fetch_record(
            store.wave_dir(wave_config.wave_label), url, tuple(table.name for table in tables)
        )
    except StoreWriteError:
        store.discard(written)
        raise


def _process_file(
    url: str,
    *,
    wave_config: WaveConfig,
    store: DatasetStore,
    max_attempts: int,
    timeout: float,
    downloader: Downloader | None,
    options: XportDecodeOptions | None,
) -> FileOutcome:
    """Run one file, turning domain errors into a failed outcome."""
    try:
        return fetch_and_store(
            url,
            wave_config,
            store=store,
            max_attempts=max_attempts,
            timeout=timeout,
            downloader=downloader,
            options=options,
        )
    except NhanesError as error:
        _LOGGER.error("file_failed", url=url, error=str(error))
        return FileOutcome(url, FileStatus.FAILED, error=str(error))


def _log_wave_completion(report: WaveRunReport, workers: int) -> None:
    _LOGGER.info(
        "wave_download_completed",
        wave_label=report.wave_label,
        workers=workers,
        completed=report.count(FileStatus.COMPLETED),
        skipped=report.count(FileStatus.SKIPPED),
        transfer_exhausted=report.count(FileStatus.TRANSFER_EXHAUSTED),
        failed=report.count(FileStatus.FAILED),
    )
