"""Wave directory and remote location setup.

This module validates a wave start year, prepares the local wave
directory, and resolves the remote roots the wave is listed from.
No network IO happens here.
"""

from __future__ import annotations

import atexit
from functools import lru_cache
from pathlib import Path
import shutil
import tempfile

from core import waves
from core.config import NhanesConfig
from core.constants import WAVE_DIR_PREFIX
from core.errors import DirectoryNotFoundError
from core.logging_config import get_logger
from core.remote_uri import join_url
from core.types import WaveConfig

_LOGGER = get_logger(__name__)

DEFAULT_WAVE_START_YEAR = 2011


def setup_wave(
    local_dir: Path | str | None = None,
    wave_start_year: int = DEFAULT_WAVE_START_YEAR,
    config: NhanesConfig | None = None,
) -> WaveConfig:
    """Prepare local and remote locations for one wave.

    Args:
        local_dir: Existing directory for wave folders; ``None`` or ``""`` uses a
            temporary directory shared for the life of the process.
        wave_start_year: Odd first year of the wave.
        config: Runtime configuration supplying remote roots.

    Returns:
        Resolved wave configuration.

    Raises:
        InvalidWaveYearError: If the year is not a wave start.
        DirectoryNotFoundError: If ``local_dir`` does not exist.
    """
    resolved_config = config or NhanesConfig.from_env()
    label = waves.wave_label(wave_start_year)
    base_dir = _resolve_base_dir(local_dir)
    target_dir = base_dir / f"{WAVE_DIR_PREFIX}{label}"
    target_dir.mkdir(exist_ok=True)
    wave_config = WaveConfig(
        remote_data_root=join_url(
            resolved_config.data_url_root, waves.wave_span(wave_start_year), directory=True
        ),
        remote_mortality_root=join_url(resolved_config.mortality_url_root, directory=True),
        local_target_dir=target_dir,
        wave_label=label,
        start_year=wave_start_year,
    )
    _LOGGER.info(
        "wave_prepared",
        wave_label=label,
        local_target_dir=str(target_dir),
        remote_data_root=wave_config.remote_data_root,
    )
    return wave_config


def _resolve_base_dir(local_dir: Path | str | None) -> Path:
    if local_dir is None or local_dir == "":
        return session_temp_dir()
    base_dir = Path(local_dir).expanduser().resolve()
    if not base_dir.is_dir():
        raise DirectoryNotFoundError(
            f"Data directory not found at {base_dir}. "
            "Create the directory or pass an existing path."
        )
    return base_dir


@lru_cache(maxsize=1)
def session_temp_dir() -> Path:
    """Return the process-wide temporary data directory."""
    temp_dir = Path(tempfile.mkdtemp(prefix="nhanes-"))
    atexit.register(shutil.rmtree, temp_dir, ignore_errors=True)
    return temp_dir
