"""Decoder dispatch by file extension."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Callable

from core.constants import MORTALITY_EXTENSION, XPORT_EXTENSION
from core.errors import UnsupportedFileTypeError
from ingest.decoded_payload import DecodedPayload
from ingest.mortality_decoder import decode_mortality
from ingest.xport_decoder import XportDecodeOptions, decode_xport

Decoder = Callable[[Path, XportDecodeOptions], DecodedPayload]


def decoder_for(name: str | Path) -> Decoder:
    """Return the decoder for a file name or URL.

    Raises:
        UnsupportedFileTypeError: If the extension has no decoder.
    """
    extension = PurePosixPath(str(name)).suffix.lower()
    if extension == XPORT_EXTENSION:
        return decode_xport
    if extension == MORTALITY_EXTENSION:
        return _decode_mortality
    raise UnsupportedFileTypeError(
        f"Unsupported file type '{extension or '<none>'}' for {name}. "
        f"Expected one of {XPORT_EXTENSION}, {MORTALITY_EXTENSION}."
    )


def decode_file(path: Path, options: XportDecodeOptions | None = None) -> DecodedPayload:
    """Decode a local file with the decoder its extension selects.

    Raises:
        UnsupportedFileTypeError: If the extension has no decoder.
        DecodeError: If the payload is malformed.
    """
    decoder = decoder_for(path)
    return decoder(Path(path), options or XportDecodeOptions())


def _decode_mortality(path: Path, options: XportDecodeOptions) -> DecodedPayload:
    return decode_mortality(path, encoding=options.encoding)
