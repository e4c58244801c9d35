"""Catalog import pipeline: parsed CSV rows → normalized songs → bulk upserts.

# ─── HOW AN IMPORT RUNS ───────────────────────────────────────────────
#
#   bytes ──decode()──► text ──sniff_catalog_csv()──► rows
#                                                     │
#        ┌────────────────────────────────────────────┘
#        ▼
#   for each row:
#     resolve artist/title/styles through the column aliases
#     skip the row if artist or title is blank
#     build a SongRecord (display text + normalize() projections)
#     buffer it; every ``batch_size`` records → provider.bulk_upsert()
#
# A batch that fails (duplicate-key race, network hiccup) is logged and
# counted in ``failed_batches``; the import carries on with the next one.
# Only a schema failure (no artist/title columns) aborts, and it does so
# before the first write.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re
import time
from typing import Iterable, Mapping

from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.models.song import ImportTotals, SongRecord
from cancionero.services.column_aliases import match_columns, resolve_field
from cancionero.services.csv_decoder import SniffResult, decode, sniff_catalog_csv
from cancionero.utils.errors import StorageError
from cancionero.utils.logging import get_logger
from cancionero.utils.text_normalizer import normalize

_logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000
DEFAULT_PROGRESS_EVERY = 5000

_STYLE_SEPARATORS = re.compile(r"[;,/|]")


def split_styles(value: str | None) -> list[str]:
    """Split a styles cell on ``; , / |`` and drop blank entries."""
    if not value:
        return []
    return [part.strip() for part in _STYLE_SEPARATORS.split(str(value)) if part.strip()]


def dedupe_styles(styles: list[str]) -> tuple[list[str], list[str]]:
    """Deduplicate *styles* by normalized form, keeping the first surface form.

    Styles that normalize to an empty string are dropped.

    Returns:
        ``(styles, styles_norm)`` as parallel lists.
    """
    seen: set[str] = set()
    kept: list[str] = []
    kept_norm: list[str] = []
    for style in styles:
        norm = normalize(style)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        kept.append(style)
        kept_norm.append(norm)
    return kept, kept_norm


def build_song_record(artist: str, title: str, raw_styles: str = "") -> SongRecord | None:
    """Build the stored form of one catalog row; ``None`` if it must be skipped."""
    artist = (artist or "").strip()
    title = (title or "").strip()
    if not artist or not title:
        return None

    styles, styles_norm = dedupe_styles(split_styles(raw_styles))
    return SongRecord(
        artist=artist,
        title=title,
        styles=styles,
        artist_norm=normalize(artist),
        title_norm=normalize(title),
        styles_norm=styles_norm,
    )


class CatalogImporter:
    """Streams parsed rows into the catalog provider in fixed-size batches.

    In dry-run mode every row is still resolved and normalized (so the
    totals show what *would* be written) but the provider is never called.
    """

    def __init__(
        self,
        catalog: ICatalogProvider,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        dry_run: bool = False,
    ) -> None:
        self._catalog = catalog
        self._batch_size = max(1, batch_size)
        self._progress_every = max(1, progress_every)
        self._dry_run = dry_run

    async def import_bytes(self, data: bytes, forced_encoding: str = "auto") -> tuple[SniffResult, ImportTotals]:
        """Decode, sniff and import a whole CSV file.

        Raises:
            CsvSchemaError: Before any write, if the file has no usable columns.
            ConfigurationError: If *forced_encoding* is not supported.
        """
        text = decode(data, forced_encoding)
        sniffed = sniff_catalog_csv(text)
        _logger.info(
            "catalog_csv_sniffed",
            delimiter=sniffed.delimiter,
            fields=sniffed.fields,
            rows=len(sniffed.rows),
            retried=sniffed.retried,
        )
        totals = await self.import_rows(sniffed.rows, fields=sniffed.fields)
        return sniffed, totals

    async def import_rows(
        self,
        rows: Iterable[Mapping[str, str]],
        fields: list[str] | None = None,
    ) -> ImportTotals:
        """Import *rows* (header-keyed dicts) and return the running totals."""
        totals = ImportTotals()
        buffer: list[SongRecord] = []
        columns = match_columns(fields) if fields is not None else None
        started = time.perf_counter()

        for row in rows:
            totals.read += 1
            row_columns = columns if columns is not None else match_columns(list(row.keys()))
            record = build_song_record(
                resolve_field(row, "artist", row_columns),
                resolve_field(row, "title", row_columns),
                resolve_field(row, "styles", row_columns),
            )
            if record is None:
                totals.skipped += 1
            else:
                buffer.append(record)

            if len(buffer) >= self._batch_size:
                await self._flush(buffer, totals)
            if totals.read % self._progress_every == 0:
                _logger.info(
                    "catalog_import_progress",
                    read=totals.read,
                    elapsed_ms=int((time.perf_counter() - started) * 1000),
                )

        await self._flush(buffer, totals)
        _logger.info(
            "catalog_import_finished",
            dry_run=self._dry_run,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
            **totals.model_dump(),
        )
        return totals

    async def _flush(self, buffer: list[SongRecord], totals: ImportTotals) -> None:
        if not buffer:
            return
        batch = list(buffer)
        buffer.clear()
        if self._dry_run:
            return

        try:
            result = await self._catalog.bulk_upsert(batch)
        except StorageError as exc:
            totals.failed_batches += 1
            _logger.warning("catalog_batch_failed", batch_size=len(batch), error=str(exc))
            return

        totals.add(result)
        if result.write_errors:
            totals.failed_batches += 1
            _logger.warning(
                "catalog_batch_failed",
                batch_size=len(batch),
                write_errors=result.write_errors,
            )
