"""Runtime configuration model for nhanes-etl.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CATALOG_URL,
    DEFAULT_DATA_ROOT,
    DEFAULT_DATA_URL_ROOT,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MORTALITY_URL_ROOT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_WORKERS,
)
from core.errors import NhanesConfigError


@dataclass(frozen=True)
class NhanesConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local directory holding one ``nhanes_<years>`` folder per wave.
        data_url_root: Remote root containing ``<start>-<end>/`` wave listings.
        mortality_url_root: Remote directory listing linked mortality files.
        catalog_url: HTML page listing every published data file.
        max_attempts: Download attempts per file before giving up.
        request_timeout: Per-request network timeout in seconds.
        workers: Default worker count for parallel wave downloads.
    """

    data_root: Path
    data_url_root: str
    mortality_url_root: str
    catalog_url: str
    max_attempts: int
    request_timeout: float
    workers: int

    @classmethod
    def from_env(cls) -> "NhanesConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            NhanesConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("NHANES_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            data_url_root=os.getenv("NHANES_DATA_URL", DEFAULT_DATA_URL_ROOT),
            mortality_url_root=os.getenv("NHANES_MORTALITY_URL", DEFAULT_MORTALITY_URL_ROOT),
            catalog_url=os.getenv("NHANES_CATALOG_URL", DEFAULT_CATALOG_URL),
            max_attempts=_parse_positive_int(
                "NHANES_MAX_ATTEMPTS", os.getenv("NHANES_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))
            ),
            request_timeout=_parse_positive_float(
                "NHANES_REQUEST_TIMEOUT",
                os.getenv("NHANES_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)),
            ),
            workers=_parse_positive_int(
                "NHANES_WORKERS", os.getenv("NHANES_WORKERS", str(DEFAULT_WORKERS))
            ),
        )


def _parse_positive_int(variable: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        variable: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        NhanesConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise NhanesConfigError(
            f"Invalid {variable} value: expected integer, got '{raw_value}'. "
            f"Set {variable} to a positive whole number."
        ) from error
    if value < 1:
        raise NhanesConfigError(
            f"Invalid {variable} value: expected at least 1, got {value}. "
            f"Set {variable} to a positive whole number."
        )
    return value


def _parse_positive_float(variable: str, raw_value: str) -> float:
    """Parse a positive float environment value.

    Args:
        variable: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed float.

    Raises:
        NhanesConfigError: If value is not a positive number.
    """
    try:
        value = float(raw_value)
    except ValueError as error:
        raise NhanesConfigError(
            f"Invalid {variable} value: expected number, got '{raw_value}'. "
            f"Set {variable} to a positive number of seconds."
        ) from error
    if value <= 0:
        raise NhanesConfigError(
            f"Invalid {variable} value: expected a positive number, got {value}. "
            f"Set {variable} to a positive number of seconds."
        )
    return value
