"""Shared typed models.

This module defines immutable data models used by ingest, store,
merge, and CLI layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from core.waves import wave_letter


@dataclass(frozen=True)
class WaveConfig:
    """Resolved locations for one NHANES wave.

    Attributes:
        remote_data_root: Remote directory listing the wave's XPORT files.
        remote_mortality_root: Remote directory listing linked mortality files.
        local_target_dir: Local ``nhanes_<start>_<end>`` directory for stored tables.
        wave_label: Wave years joined by underscore, e.g. ``1999_2000``.
        start_year: First year of the wave.
    """

    remote_data_root: str
    remote_mortality_root: str
    local_target_dir: Path
    wave_label: str
    start_year: int

    @property
    def data_dir(self) -> Path:
        """Directory that holds every wave subdirectory."""
        return self.local_target_dir.parent

    @property
    def wave_letter(self) -> str:
        """Letter suffix used by this wave's file names."""
        return wave_letter(self.start_year)


@dataclass(frozen=True)
class RemoteFileEntry:
    """One file row parsed from a remote directory listing.

    Attributes:
        size: File size in bytes as reported by the listing.
        month: Modification month token.
        day: Modification day token.
        year: Modification year (or time of day for recent files).
        filename: Remote file name.
        url: Fully resolved download URL.
    """

    size: int
    month: str
    day: str
    year: str
    filename: str
    url: str


@dataclass(frozen=True)
class CatalogEntry:
    """One published data file parsed from the remote catalog page.

    Attributes:
        years: Year range text, e.g. ``1999-2000``.
        data_file_name: Human-readable topic title.
        doc_file: Documentation link text, e.g. ``DEMO Doc``.
        data_file: Data link text, e.g. ``DEMO Data [XPT - 3.4 MB]``.
        date_published: Publication date text.
        key: Lower-cased file stem shared by the doc and data links.
        name: Key without its trailing wave letter.
        doc_link: Absolute documentation URL when one was listed.
        data_link: Absolute XPORT download URL.
        start_year: First year covered by the file.
        end_year: Last year covered by the file.
        wave: Start year as text, or ``multiple`` for multi-wave files.
    """

    years: str
    data_file_name: str
    doc_file: str
    data_file: str
    date_published: str
    key: str
    name: str
    doc_link: str | None
    data_link: str
    start_year: int
    end_year: int
    wave: str


class FileStatus(str, Enum):
    """Final state of one file in a wave download run."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    TRANSFER_EXHAUSTED = "transfer_exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class FileOutcome:
    """Result of downloading, decoding, and storing one remote file.

    Attributes:
        url: Remote URL that was processed.
        status: Final file status.
        stems: Stored table stems (empty unless completed or skipped).
        attempts: Transfer attempts spent on the file.
        error: Failure description for failed or exhausted files.
    """

    url: str
    status: FileStatus
    stems: tuple[str, ...] = ()
    attempts: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the file's tables are present in the store."""
        return self.status in (FileStatus.COMPLETED, FileStatus.SKIPPED)


@dataclass(frozen=True)
class WaveRunReport:
    """Collected per-file outcomes of one wave download run.

    Attributes:
        wave_label: Wave that was processed.
        outcomes: Per-file outcomes in completion order.
    """

    wave_label: str
    outcomes: tuple[FileOutcome, ...]

    @property
    def failed(self) -> tuple[FileOutcome, ...]:
        """Outcomes whose tables did not reach the store."""
        return tuple(outcome for outcome in self.outcomes if not outcome.ok)

    def count(self, status: FileStatus) -> int:
        """Return the number of outcomes with the given status."""
        return sum(1 for outcome in self.outcomes if outcome.status == status)
