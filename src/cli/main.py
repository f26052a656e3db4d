"""nhanes-etl CLI entry points.
This module exposes wave download, catalog, and merge commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Sequence

import pandas as pd

from core.config import NhanesConfig
from core.errors import NhanesError
from ingest.catalog_listing import catalog_to_frame
from ingest.wave_setup import DEFAULT_WAVE_START_YEAR
from merge.table_merge import CohortMerge
from store.dataset_sdk import NhanesClient
from store.table_io import write_table_file

CSV_SUFFIX = ".csv"


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="nhanes", description="NHANES wave ETL CLI")
    parser.add_argument("--data-root", help="Override NHANES_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_setup_command(subparsers)
    _add_files_command(subparsers)
    _add_download_command(subparsers)
    _add_catalog_command(subparsers)
    _add_merge_command(subparsers)
    _add_labels_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the nhanes CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root)
        return _dispatch(client, args)
    except NhanesError as error:
        print(f"error={error}", file=sys.stderr)
        return 1


def _dispatch(client: NhanesClient, args: argparse.Namespace) -> int:
    if args.command == "setup":
        return _run_setup_command(client, args)
    if args.command == "files":
        return _run_files_command(client, args)
    if args.command == "download":
        return _run_download_command(client, args)
    if args.command == "catalog":
        return _run_catalog_command(client, args)
    if args.command == "merge":
        return _run_merge_command(client, args)
    if args.command == "labels":
        return _run_labels_command(client, args)
    raise NhanesError(f"Unsupported command: {args.command}")


def _build_client(data_root: str | None) -> NhanesClient:
    """Build SDK client with optional data-root override."""
    config = NhanesConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return NhanesClient(config)


def _run_setup_command(client: NhanesClient, args: argparse.Namespace) -> int:
    wave_config = client.setup_wave(args.year)
    print(f"wave_label={wave_config.wave_label}")
    print(f"local_target_dir={wave_config.local_target_dir}")
    print(f"remote_data_root={wave_config.remote_data_root}")
    print(f"remote_mortality_root={wave_config.remote_mortality_root}")
    return 0


def _run_files_command(client: NhanesClient, args: argparse.Namespace) -> int:
    entries = client.list_wave_files(args.year, save_file_list=not args.no_save)
    for entry in entries:
        print(f"{entry.size}\t{entry.filename}\t{entry.url}")
    return 0


def _run_download_command(client: NhanesClient, args: argparse.Namespace) -> int:
    report = client.download_wave(
        args.year,
        urls=args.url or None,
        workers=args.workers,
        skip_existing=not args.force,
    )
    for outcome in report.outcomes:
        stems = ",".join(outcome.stems) or "-"
        print(f"{outcome.status.value}\t{outcome.url}\t{stems}\t{outcome.error or '-'}")
    return 0 if not report.failed else 1


def _run_catalog_command(client: NhanesClient, args: argparse.Namespace) -> int:
    frame = catalog_to_frame(client.catalog())
    if args.wave:
        frame = frame[frame["wave"] == args.wave]
    _emit_frame(frame, args.output)
    return 0


def _run_merge_command(client: NhanesClient, args: argparse.Namespace) -> int:
    result = client.merge_tables(args.stems, args.year)
    output_path = Path(args.output)
    if isinstance(result, CohortMerge):
        _write_frame(result.cohort, output_path)
        print(f"merged_path={output_path}")
        for stem, table in result.excluded.items():
            excluded_path = output_path.with_name(f"{output_path.stem}_{stem}{output_path.suffix}")
            _write_frame(table, excluded_path)
            print(f"excluded_path={excluded_path}")
        return 0
    _write_frame(result, output_path)
    print(f"merged_path={output_path}")
    return 0


def _run_labels_command(client: NhanesClient, args: argparse.Namespace) -> int:
    labels = client.merge_labels(args.stems, args.year)
    _emit_frame(labels, args.output)
    return 0


def _emit_frame(frame: pd.DataFrame, output: str | None) -> None:
    """Write a frame to a file, or print it as CSV when no file is given."""
    if output:
        _write_frame(frame, Path(output))
        print(f"output_path={output}")
        return
    sys.stdout.write(frame.to_csv(index=False))


def _write_frame(frame: pd.DataFrame, path: Path) -> None:
    if path.suffix.lower() == CSV_SUFFIX:
        path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(path, index=False)
        return
    write_table_file(frame, path)


def _add_year_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--year",
        type=int,
        default=DEFAULT_WAVE_START_YEAR,
        help="Odd first year of the wave, e.g. 2011",
    )


def _add_setup_command(subparsers: Any) -> None:
    """Register setup subcommand."""
    parser = subparsers.add_parser("setup", help="Create the local wave directory")
    _add_year_argument(parser)


def _add_files_command(subparsers: Any) -> None:
    """Register files subcommand."""
    parser = subparsers.add_parser("files", help="List a wave's remote data files")
    _add_year_argument(parser)
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write the listing snapshot into the wave directory",
    )


def _add_download_command(subparsers: Any) -> None:
    """Register download subcommand."""
    parser = subparsers.add_parser("download", help="Download and store a wave's files")
    _add_year_argument(parser)
    parser.add_argument("--url", action="append", help="Specific file URL, repeatable")
    parser.add_argument("--workers", type=int, help="Parallel download threads")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Download files even when their tables are already stored",
    )


def _add_catalog_command(subparsers: Any) -> None:
    """Register catalog subcommand."""
    parser = subparsers.add_parser("catalog", help="List the published data file catalog")
    parser.add_argument("--wave", help="Keep entries for one start year, or 'multiple'")
    parser.add_argument("--output", help="Write to .csv or .parquet instead of stdout")


def _add_merge_command(subparsers: Any) -> None:
    """Register merge subcommand."""
    parser = subparsers.add_parser("merge", help="Merge stored tables onto demographics")
    _add_year_argument(parser)
    parser.add_argument("stems", nargs="*", help="Table stems, e.g. bpx mcq")
    parser.add_argument("--output", required=True, help="Destination .csv or .parquet file")


def _add_labels_command(subparsers: Any) -> None:
    """Register labels subcommand."""
    parser = subparsers.add_parser("labels", help="Build a variable label dictionary")
    _add_year_argument(parser)
    parser.add_argument("stems", nargs="*", help="Table stems, e.g. bpx mcq")
    parser.add_argument("--output", help="Write to .csv or .parquet instead of stdout")
