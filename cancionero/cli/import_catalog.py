# =============================================================================
# cancionero/cli/import_catalog.py — Song Catalog CSV Import
# =============================================================================
#
# Offline batch job that loads a spreadsheet export of the karaoke catalog
# into MongoDB.  Runs as its own process, never inside the web server.
#
# Steps:
#   1. Read CSV_PATH (or --file) and decode it (CSV_ENCODING / --encoding,
#      "auto" by default: BOM sniffing, UTF-16 detection, Windows-1252
#      fallback).
#   2. Sniff delimiter and columns; abort with exit code 1 if no artist and
#      title columns are found.  Nothing has been written at this point.
#   3. --replace wipes the songs collection; indexes are ensured.
#   4. Rows are normalized and upserted in batches of 1000.
#   5. A summary and a duplicate-key report (top 10) are printed.
#
# Usage examples:
#   python -m cancionero.cli.import_catalog
#   python -m cancionero.cli.import_catalog --file catalog.csv --replace
#   python -m cancionero.cli.import_catalog --dry-run --encoding win1252
#   python -m cancionero.cli.import_catalog --indexes-only
# =============================================================================

"""Standalone CLI for importing the song catalog from a CSV file.

Usage::

    python -m cancionero.cli.import_catalog [--file PATH] [--encoding ENC]
        [--replace | --truncate | -r] [--dry-run] [--indexes-only]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from cancionero.config.loader import load_config
from cancionero.config.settings import Settings
from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.models.song import DuplicateGroup, ImportTotals
from cancionero.providers.catalog.mongo_catalog_provider import MongoCatalogProvider
from cancionero.providers.mongo_client import (
    close_mongo_client,
    create_mongo_client,
    get_database,
)
from cancionero.services.catalog_importer import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_PROGRESS_EVERY,
    CatalogImporter,
)
from cancionero.services.csv_decoder import decode, sniff_catalog_csv
from cancionero.utils.errors import ConfigurationError, CsvSchemaError, StorageError
from cancionero.utils.logging import configure_logging

_MAX_IDS_SHOWN = 5


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_summary(totals: ImportTotals) -> None:
    print("\nImport complete:")
    print(f"  Read:           {totals.read}")
    print(f"  Upserted:       {totals.upserted}")
    print(f"  Modified:       {totals.modified}")
    print(f"  Skipped:        {totals.skipped}")
    if totals.failed_batches:
        print(f"  Failed batches: {totals.failed_batches}")


def _print_duplicates(groups: list[DuplicateGroup], limit: int) -> None:
    if not groups:
        print("No duplicates by (artistNorm, titleNorm).")
        return
    print(f"Duplicates by (artistNorm, titleNorm): {len(groups)} groups (showing up to {limit})")
    for group in groups:
        ids = ", ".join(group.ids[:_MAX_IDS_SHOWN])
        more = "..." if len(group.ids) > _MAX_IDS_SHOWN else ""
        print(f'  - "{group.artist_norm}" | "{group.title_norm}" -> {group.count} docs (ids: {ids}{more})')


# ---------------------------------------------------------------------------
# Import run
# ---------------------------------------------------------------------------


async def run_import(
    args: argparse.Namespace,
    app_settings: Settings,
    app_config: dict[str, Any],
    catalog: ICatalogProvider | None = None,
) -> int:
    """Execute one import according to *args*; returns the process exit code.

    *catalog* is built from ``MONGO_URI`` when not supplied.
    """
    importer_cfg = app_config.get("importer", {})
    report_limit = int(importer_cfg.get("duplicate_report_limit", 10))

    if catalog is None and not app_settings.mongo_uri:
        print("Error: MONGO_URI is not set.", file=sys.stderr)
        return 1

    csv_path: Path | None = None
    if not args.indexes_only:
        raw_path = args.file or app_settings.csv_path
        if not raw_path:
            print("Error: CSV_PATH is not set (or pass --file).", file=sys.stderr)
            return 1
        csv_path = Path(raw_path).expanduser().resolve()
        if not csv_path.is_file():
            print(f"Error: CSV file not found: {csv_path}", file=sys.stderr)
            return 1

    mongo_client = None
    try:
        if catalog is None:
            mongo_client = create_mongo_client(app_settings)
            catalog = MongoCatalogProvider(get_database(mongo_client, app_settings))

        if args.indexes_only:
            await catalog.initialize()
            print("Indexes OK.")
            return 0

        encoding = args.encoding or app_settings.csv_encoding or "auto"
        importer = CatalogImporter(
            catalog,
            batch_size=int(importer_cfg.get("batch_size", DEFAULT_BATCH_SIZE)),
            progress_every=int(importer_cfg.get("progress_every", DEFAULT_PROGRESS_EVERY)),
            dry_run=args.dry_run,
        )

        print(f"Importing CSV: {csv_path}")
        data = csv_path.read_bytes()

        if args.dry_run:
            sniffed, totals = await importer.import_bytes(data, encoding)
            print(f"Delimiter: {sniffed.delimiter!r}  Columns: {sniffed.fields}")
            print(f"DRY RUN: {len(sniffed.rows)} rows would be read. Nothing written.")
            _print_summary(totals)
            return 0

        # Decode and sniff before touching the collection so a bad file
        # never leaves the catalog wiped.
        sniffed = sniff_catalog_csv(decode(data, encoding))
        print(f"Delimiter: {sniffed.delimiter!r}  Columns: {sniffed.fields}")

        if args.replace:
            deleted = await catalog.delete_all()
            print(f"Songs collection cleared. Documents deleted: {deleted}")

        await catalog.initialize()
        totals = await importer.import_rows(sniffed.rows, fields=sniffed.fields)

        print(f"\nDuplicate report (top {report_limit})...")
        _print_duplicates(await catalog.find_duplicate_groups(report_limit), report_limit)
        _print_summary(totals)
        print(f"  Songs in catalog: {await catalog.count()}")
        return 0

    except CsvSchemaError as exc:
        print(f"Error: {exc.message}. Columns found: {exc.fields}", file=sys.stderr)
        return 1
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except StorageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        close_mongo_client(mongo_client)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the import CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m cancionero.cli.import_catalog",
        description="Import the karaoke song catalog from a CSV file into MongoDB.",
    )
    parser.add_argument("--file", help="CSV file to import (default: CSV_PATH)")
    parser.add_argument(
        "--encoding",
        help="auto, utf8, win1252, latin1, utf16le or utf16be (default: CSV_ENCODING)",
    )
    parser.add_argument(
        "--replace",
        "--truncate",
        "-r",
        action="store_true",
        dest="replace",
        help="Delete every song before importing",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Parse and normalize the file without writing to the database",
    )
    parser.add_argument(
        "--indexes-only",
        action="store_true",
        dest="indexes_only",
        help="Only create/verify the catalog indexes",
    )
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse flags, load settings, run, exit with its code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    app_settings = Settings()
    app_config = load_config(settings=app_settings)
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    sys.exit(asyncio.run(run_import(args, app_settings, app_config)))


if __name__ == "__main__":
    main()
