"""Core constants used across nhanes-etl modules.

This module centralizes remote locations, file layout names, and schema keys.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".nhanes")
DEFAULT_DATA_URL_ROOT = "ftp://ftp.cdc.gov/pub/Health_Statistics/NCHS/nhanes/"
DEFAULT_MORTALITY_URL_ROOT = (
    "ftp://ftp.cdc.gov/pub/Health_Statistics/NCHS/datalinkage/linked_mortality/"
)
DEFAULT_CATALOG_URL = "https://wwwn.cdc.gov/Nchs/Nhanes/Search/DataPage.aspx"
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0
DEFAULT_WORKERS = 1
DOWNLOAD_CHUNK_SIZE = 1024 * 1024

FIRST_WAVE_YEAR = 1999
LATEST_WAVE_YEAR = 2017
SUPPORTED_WAVE_YEARS = tuple(range(FIRST_WAVE_YEAR, LATEST_WAVE_YEAR + 1, 2))
WAVE_DIR_PREFIX = "nhanes_"

SUBJECT_ID_COLUMN = "SEQN"
BASE_TABLE_STEM = "demo"
MORTALITY_TABLE_STEM = "death"
LABEL_SUFFIX = "_label"
TABLE_FILE_EXTENSION = ".parquet"
FILE_SPECS_FILE_NAME = "download_file_specs.json"
FETCH_RECORD_DIR_NAME = ".fetched"
LABEL_COLUMNS = ("name", "label", "type", "width", "format")

XPORT_EXTENSION = ".xpt"
MORTALITY_EXTENSION = ".dat"
SUPPORTED_REMOTE_EXTENSIONS = (XPORT_EXTENSION, MORTALITY_EXTENSION)
DEFAULT_XPORT_ENCODING = "ISO-8859-1"
MORTALITY_NULL_TOKEN = "."

CATALOG_TABLE_ID = "PageContents_GridView1"
CATALOG_RESTRICTED_MARKER = "RDC Only"
MULTIPLE_WAVE_LABEL = "multiple"
