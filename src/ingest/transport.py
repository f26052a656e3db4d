"""Retrying transport for remote NHANES files.

This module downloads one remote resource to a local temporary path.
Each attempt is classified as success, transient failure, or fatal
failure; transient failures are retried immediately until the attempt
budget is spent. Exhaustion is reported through the result, not raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import shutil
from typing import Callable
import urllib.request

import requests

from core.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DOWNLOAD_CHUNK_SIZE,
)
from core.errors import TransferExhaustedError
from core.logging_config import get_logger
from core.remote_uri import HTTP_SCHEMES, url_scheme

_LOGGER = get_logger(__name__)

URLLIB_SCHEMES = ("ftp", "file")
RETRYABLE_HTTP_STATUSES = (408, 429)

Downloader = Callable[[str, Path, float], None]


class AttemptOutcome(str, Enum):
    """Classification of a single download attempt."""

    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_FAILURE = "fatal_failure"


class TransferStatus(str, Enum):
    """Overall result of a bounded download."""

    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    FATAL = "fatal"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of :func:`fetch`.

    Attributes:
        url: Remote URL that was requested.
        destination: Local path the payload was written to.
        status: Overall transfer status.
        attempts: Number of attempts made.
        error: Description of the last failure, if any.
    """

    url: str
    destination: Path
    status: TransferStatus
    attempts: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the payload was fully transferred."""
        return self.status is TransferStatus.SUCCESS

    def raise_for_status(self) -> None:
        """Raise when the transfer did not succeed.

        Raises:
            TransferExhaustedError: If no attempt succeeded.
        """
        if self.ok:
            return
        raise TransferExhaustedError(
            f"Failed to download {self.url} after {self.attempts} attempt(s): {self.error}. "
            "Check the URL and network access, then retry the file."
        )


def fetch(
    remote_url: str,
    local_temp_path: Path | str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    downloader: Downloader | None = None,
) -> FetchResult:
    """Download a remote file with bounded immediate retry.

    Args:
        remote_url: ``http(s)://``, ``ftp://`` or ``file://`` URL.
        local_temp_path: Destination path, overwritten on each attempt.
        max_attempts: Maximum number of attempts, at least 1.
        timeout: Per-request timeout in seconds.
        downloader: Optional replacement for the network download step.

    Returns:
        Transfer result; check ``ok`` before using the destination file.

    Raises:
        ValueError: If ``max_attempts`` is below 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}.")
    download = downloader or download_to_path
    destination = Path(local_temp_path)
    last_error: str | None = None
    for attempt in range(1, max_attempts + 1):
        outcome, error = _attempt_download(download, remote_url, destination, timeout)
        if outcome is AttemptOutcome.SUCCESS:
            return FetchResult(remote_url, destination, TransferStatus.SUCCESS, attempt)
        last_error = f"{type(error).__name__}: {error}"
        destination.unlink(missing_ok=True)
        _LOGGER.warning(
            "transfer_attempt_failed",
            url=remote_url,
            attempt=attempt,
            max_attempts=max_attempts,
            outcome=outcome.value,
            error=last_error,
        )
        if outcome is AttemptOutcome.FATAL_FAILURE:
            return FetchResult(
                remote_url, destination, TransferStatus.FATAL, attempt, last_error
            )
    _LOGGER.error("transfer_exhausted", url=remote_url, attempts=max_attempts, error=last_error)
    return FetchResult(
        remote_url, destination, TransferStatus.EXHAUSTED, max_attempts, last_error
    )


def classify_failure(error: BaseException) -> AttemptOutcome:
    """Classify a download exception as transient or fatal."""
    if isinstance(
        error,
        (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ),
    ):
        return AttemptOutcome.FATAL_FAILURE
    if isinstance(error, requests.HTTPError) and error.response is not None:
        status_code = error.response.status_code
        if status_code >= 500 or status_code in RETRYABLE_HTTP_STATUSES:
            return AttemptOutcome.TRANSIENT_FAILURE
        return AttemptOutcome.FATAL_FAILURE
    if isinstance(error, (requests.RequestException, OSError)):
        return AttemptOutcome.TRANSIENT_FAILURE
    return AttemptOutcome.FATAL_FAILURE


def download_to_path(url: str, destination: Path, timeout: float) -> None:
    """Stream a remote resource into a local file.

    Raises:
        requests.RequestException: For HTTP transport failures.
        OSError: For FTP, file, or local write failures.
        ValueError: For unsupported URL schemes.
    """
    scheme = url_scheme(url)
    if scheme in HTTP_SCHEMES:
        _download_http(url, destination, timeout)
        return
    if scheme in URLLIB_SCHEMES:
        _download_urllib(url, destination, timeout)
        return
    raise ValueError(f"Unsupported URL scheme '{scheme}' in {url}.")


def read_remote_text(url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> str:
    """Read a remote listing or page as text.

    Raises:
        requests.RequestException: For HTTP transport failures.
        OSError: For FTP or file failures.
        ValueError: For unsupported URL schemes.
    """
    scheme = url_scheme(url)
    if scheme in HTTP_SCHEMES:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.text
    if scheme in URLLIB_SCHEMES:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            return response.read().decode("latin-1")
    raise ValueError(f"Unsupported URL scheme '{scheme}' in {url}.")


def _attempt_download(
    download: Downloader,
    url: str,
    destination: Path,
    timeout: float,
) -> tuple[AttemptOutcome, Exception | None]:
    try:
        download(url, destination, timeout)
    except (requests.RequestException, OSError, ValueError) as error:
        return classify_failure(error), error
    return AttemptOutcome.SUCCESS, None


def _download_http(url: str, destination: Path, timeout: float) -> None:
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with destination.open("wb") as handle:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    handle.write(chunk)


def _download_urllib(url: str, destination: Path, timeout: float) -> None:
    with urllib.request.urlopen(url, timeout=timeout) as response:
        with destination.open("wb") as handle:
            shutil.copyfileobj(response, handle, DOWNLOAD_CHUNK_SIZE)
