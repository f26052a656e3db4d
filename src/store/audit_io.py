"""Per-wave download audit persistence.

This module isolates JSON IO of the remote file listing snapshot that a
wave download was planned from, and of the per-file fetch records that
name the tables each downloaded file produced.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from core.constants import FETCH_RECORD_DIR_NAME, FILE_SPECS_FILE_NAME
from core.errors import ListingParseError, StoreWriteError
from core.logging_config import get_logger
from core.remote_uri import url_filename
from core.types import RemoteFileEntry, WaveConfig

_LOGGER = get_logger(__name__)


def write_file_specs(wave_config: WaveConfig, entries: list[RemoteFileEntry]) -> Path:
    """Write the listing snapshot into the wave directory.

    Args:
        wave_config: Wave the entries were listed for.
        entries: Listed remote files.

    Returns:
        Path of the written audit file.
    """
    payload = {
        "wave_label": wave_config.wave_label,
        "listed_at": datetime.now(timezone.utc).isoformat(),
        "files": [asdict(entry) for entry in entries],
    }
    specs_path = wave_config.local_target_dir / FILE_SPECS_FILE_NAME
    specs_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return specs_path


def read_file_specs(wave_dir: Path) -> list[RemoteFileEntry]:
    """Read a listing snapshot written by :func:`write_file_specs`.

    Args:
        wave_dir: Wave directory holding the audit file.

    Returns:
        Listed remote files in their original order.

    Raises:
        ListingParseError: If the audit file is missing or invalid.
    """
    specs_path = wave_dir / FILE_SPECS_FILE_NAME
    if not specs_path.exists():
        raise ListingParseError(
            f"Download file specs not found at {specs_path}. "
            "List the wave files before reading the audit snapshot."
        )
    try:
        payload = json.loads(specs_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise ListingParseError(
            f"Failed to parse download file specs at {specs_path}: {error.msg}. "
            "List the wave files again to rebuild it."
        ) from error
    if not isinstance(payload, dict) or not isinstance(payload.get("files"), list):
        raise ListingParseError(
            f"Failed to parse download file specs at {specs_path}: "
            "expected an object with a 'files' list. List the wave files again."
        )
    return [_entry_from_dict(item) for item in payload["files"]]


def _entry_from_dict(payload: dict[str, Any]) -> RemoteFileEntry:
    return RemoteFileEntry(
        size=int(payload["size"]),
        month=str(payload["month"]),
        day=str(payload["day"]),
        year=str(payload["year"]),
        filename=str(payload["filename"]),
        url=str(payload["url"]),
    )


def fetch_record_path(wave_dir: Path, url: str) -> Path:
    """Return the fetch record path for one remote file."""
    return wave_dir / FETCH_RECORD_DIR_NAME / f"{url_filename(url).lower()}.json"


def write_fetch_record(wave_dir: Path, url: str, stems: tuple[str, ...]) -> Path:
    """Record which stored tables a remote file produced.

    The record is written after the tables, so its presence means the
    file was stored completely.

    Args:
        wave_dir: Wave directory holding the stored tables.
        url: Remote file URL.
        stems: Stems of every table stored from the file.

    Returns:
        Path of the written record.

    Raises:
        StoreWriteError: If the record cannot be written.
    """
    record_path = fetch_record_path(wave_dir, url)
    payload = {
        "url": url,
        "stems": list(stems),
        "fetched_at": datetime.now(timezone.utc).isoformat(),
    }
    temp_path = record_path.with_name(f".{record_path.name}.{os.getpid()}.tmp")
    try:
        record_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        os.replace(temp_path, record_path)
    except OSError as error:
        raise StoreWriteError(
            f"Failed to write fetch record {record_path}: {error}. "
            "Check free disk space and permissions, then download the file again."
        ) from error
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return record_path


def read_fetch_record(wave_dir: Path, url: str) -> tuple[str, ...] | None:
    """Return the stems recorded for a remote file, or ``None`` if unrecorded.

    A record that is unreadable or names a different URL counts as absent,
    so the file is downloaded again.
    """
    record_path = fetch_record_path(wave_dir, url)
    if not record_path.exists():
        return None
    try:
        payload = json.loads(record_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as error:
        _LOGGER.warning("fetch_record_unreadable", path=str(record_path), error=str(error))
        return None
    if not isinstance(payload, dict) or payload.get("url") != url:
        _LOGGER.warning("fetch_record_mismatch", path=str(record_path), url=url)
        return None
    stems = payload.get("stems")
    if not isinstance(stems, list) or not stems:
        return None
    return tuple(str(stem) for stem in stems)
