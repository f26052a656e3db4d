"""Unit tests for CLI command handling."""

from __future__ import annotations

import pandas as pd
import pytest

import cli.main as cli_main
from store.dataset_sdk import NhanesClient
from tests.wave_fixtures import (
    BPX_URL,
    DEMO_URL,
    MORTALITY_URL,
    FakeDownloader,
    fake_fetch_text,
    make_config,
)


@pytest.fixture
def data_root(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Route CLI clients to fake remote collaborators."""

    def build_client(data_root: str | None) -> NhanesClient:
        return NhanesClient(
            make_config(tmp_path / "data"),
            fetch_text=fake_fetch_text,
            downloader=FakeDownloader(),
        )

    monkeypatch.setattr(cli_main, "_build_client", build_client)
    return tmp_path / "data"


def test_cli_setup_prints_wave_directory(data_root, capsys) -> None:
    """Setup should print the resolved wave directory."""
    exit_code = cli_main.main(["setup", "--year", "2001"])
    output = capsys.readouterr().out

    assert exit_code == 0 and "nhanes_2001_2002" in output


def test_cli_files_lists_remote_entries(data_root, capsys) -> None:
    """Files should print one line per remote file."""
    exit_code = cli_main.main(["files", "--year", "1999", "--no-save"])
    lines = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0 and len(lines) == 4


def test_cli_download_merge_and_labels(data_root, tmp_path, capsys) -> None:
    """Downloaded tables should merge into a CSV and label dictionary."""
    download_args = ["download", "--year", "1999", "--url", DEMO_URL, "--url", BPX_URL]
    download_args += ["--url", MORTALITY_URL]
    assert cli_main.main(download_args) == 0
    merged_path = tmp_path / "merged.csv"

    merge_args = ["merge", "--year", "1999", "bpx", "death", "--output", str(merged_path)]
    assert cli_main.main(merge_args) == 0
    assert cli_main.main(["labels", "--year", "1999", "bpx"]) == 0

    merged = pd.read_csv(merged_path)
    assert len(merged) == 3 and {"BPXSY1", "MORTSTAT"} <= set(merged.columns)
    assert "BPXSY1," in capsys.readouterr().out


def test_cli_download_reports_failures(data_root, capsys) -> None:
    """A failed file should produce a non-zero exit code."""
    exit_code = cli_main.main(["download", "--year", "1999", "--url", "ftp://host/missing.xpt"])

    assert exit_code == 1 and "transfer_exhausted" in capsys.readouterr().out


def test_cli_reports_domain_errors(data_root, capsys) -> None:
    """Domain errors should print a message and exit non-zero."""
    exit_code = cli_main.main(["merge", "--year", "1999", "bpx", "--output", "out.parquet"])

    assert exit_code == 1 and "not found" in capsys.readouterr().err


def test_cli_catalog_filters_by_wave(data_root, capsys) -> None:
    """Catalog output can be limited to one wave."""
    exit_code = cli_main.main(["catalog", "--wave", "multiple"])
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0 and len(output) == 2 and "DXX_C" in output[1]
