"""nhanes-etl exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class NhanesError(Exception):
    """Base exception for all nhanes-etl failures."""


class NhanesConfigError(NhanesError):
    """Raised for invalid runtime configuration."""


class InvalidWaveYearError(NhanesError):
    """Raised when a start year is not part of the biennial wave sequence."""


class DirectoryNotFoundError(NhanesError):
    """Raised when a caller-supplied data directory does not exist."""


class ListingParseError(NhanesError):
    """Raised when a remote listing or catalog page cannot be read or parsed."""


class TransferExhaustedError(NhanesError):
    """Raised when a download spent its retry budget without succeeding."""


class DecodeError(NhanesError):
    """Raised for malformed or unreadable downloaded payloads."""


class UnsupportedFileTypeError(NhanesError):
    """Raised when no decoder exists for a file extension."""


class StoredFileNotFoundError(NhanesError, FileNotFoundError):
    """Raised when a dataset store lookup finds no artifact."""


class AmbiguousJoinKeyError(NhanesError):
    """Raised when a merge cannot join on the subject identifier alone."""


class StoreWriteError(NhanesError):
    """Raised when a table artifact cannot be written to the dataset store."""
