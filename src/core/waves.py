"""Biennial wave sequence helpers.

NHANES waves are two-year cycles named by their odd start year. Each wave
has a position in the sequence, which file names encode as a letter suffix.
"""

from __future__ import annotations

from string import ascii_lowercase

from core.constants import SUPPORTED_WAVE_YEARS
from core.errors import InvalidWaveYearError


def validate_wave_year(start_year: int) -> int:
    """Return the start year when it belongs to the wave sequence.

    Raises:
        InvalidWaveYearError: If the year is not a supported wave start.
    """
    if isinstance(start_year, bool) or start_year not in SUPPORTED_WAVE_YEARS:
        raise InvalidWaveYearError(
            f"Invalid wave start year {start_year!r}: expected an odd year from "
            f"{SUPPORTED_WAVE_YEARS[0]} to {SUPPORTED_WAVE_YEARS[-1]}."
        )
    return start_year


def wave_index(start_year: int) -> int:
    """Return the zero-based position of a wave in the sequence."""
    return SUPPORTED_WAVE_YEARS.index(validate_wave_year(start_year))


def wave_letter(start_year: int) -> str:
    """Return the file-name letter for a wave (1999 -> ``a``)."""
    return ascii_lowercase[wave_index(start_year)]


def wave_label(start_year: int) -> str:
    """Return ``<start>_<end>`` used for local directory names."""
    validate_wave_year(start_year)
    return f"{start_year}_{start_year + 1}"


def wave_span(start_year: int) -> str:
    """Return ``<start>-<end>`` used by remote directory names."""
    validate_wave_year(start_year)
    return f"{start_year}-{start_year + 1}"
