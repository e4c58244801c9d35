"""Unit tests for the catalog import pipeline."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.models.song import BulkUpsertResult
from cancionero.services.catalog_importer import (
    CatalogImporter,
    build_song_record,
    dedupe_styles,
    split_styles,
)
from cancionero.utils.errors import CsvSchemaError


# ======================================================================
# Row helpers
# ======================================================================


class TestStyles:
    def test_split_on_all_separators(self) -> None:
        assert split_styles("Rock; Pop, Balada / Cumbia | Folk") == [
            "Rock",
            "Pop",
            "Balada",
            "Cumbia",
            "Folk",
        ]

    def test_split_drops_blanks(self) -> None:
        assert split_styles(" ;; , ") == []
        assert split_styles(None) == []

    def test_dedupe_keeps_first_surface_form(self) -> None:
        styles, norm = dedupe_styles(["Rock", "ROCK", "Pop", "rock "])
        assert styles == ["Rock", "Pop"]
        assert norm == ["rock", "pop"]

    def test_dedupe_drops_symbol_only_styles(self) -> None:
        styles, norm = dedupe_styles(["!!", "Tango"])
        assert styles == ["Tango"]
        assert norm == ["tango"]


class TestBuildSongRecord:
    def test_fito_paez_row(self) -> None:
        record = build_song_record("Fito Páez", "Mariposa Tecknicolor", "Rock;Pop")
        assert record is not None
        assert record.to_document() == {
            "artist": "Fito Páez",
            "title": "Mariposa Tecknicolor",
            "styles": ["Rock", "Pop"],
            "artistNorm": "fito paez",
            "titleNorm": "mariposa tecknicolor",
            "stylesNorm": ["rock", "pop"],
        }

    def test_display_text_trimmed_not_normalized(self) -> None:
        record = build_song_record("  Los Piojos ", " Tan Solo ")
        assert record is not None
        assert record.artist == "Los Piojos"
        assert record.title == "Tan Solo"
        assert record.styles == []

    @pytest.mark.parametrize("artist,title", [("", "Song"), ("Artist", "  "), ("", "")])
    def test_blank_artist_or_title_is_skipped(self, artist: str, title: str) -> None:
        assert build_song_record(artist, title) is None


# ======================================================================
# CatalogImporter
# ======================================================================


class TestCatalogImporter:
    @pytest.mark.asyncio
    async def test_import_bytes_spanish_export(self, memory_catalog) -> None:
        data = "Artista;Canción;Género\nFito Páez;Mariposa Tecknicolor;Rock;Pop\n".encode("cp1252")
        importer = CatalogImporter(memory_catalog)

        sniffed, totals = await importer.import_bytes(data)

        assert sniffed.delimiter == ";"
        assert totals.read == 1
        assert totals.upserted == 1
        song = memory_catalog.songs[("fito paez", "mariposa tecknicolor")]
        assert song.styles == ["Rock", "Pop"]

    @pytest.mark.asyncio
    async def test_reimport_is_idempotent(self, memory_catalog) -> None:
        first = b"artist,title,styles\nSoda Stereo,Persiana Americana,Rock\n"
        second = b"artist,title,styles\nSODA STEREO,Persiana  Americana,Pop\n"
        importer = CatalogImporter(memory_catalog)

        await importer.import_bytes(first)
        _, totals = await importer.import_bytes(second)

        assert len(memory_catalog.songs) == 1
        assert totals.upserted == 0
        assert totals.matched == 1
        song = memory_catalog.songs[("soda stereo", "persiana americana")]
        assert song.artist == "SODA STEREO"
        assert song.styles == ["Pop"]

    @pytest.mark.asyncio
    async def test_rows_without_artist_or_title_are_skipped(self, memory_catalog) -> None:
        data = b"artist,title\nA,B\n,Only title\nOnly artist,\n"
        _, totals = await CatalogImporter(memory_catalog).import_bytes(data)

        assert totals.read == 3
        assert totals.skipped == 2
        assert len(memory_catalog.songs) == 1

    @pytest.mark.asyncio
    async def test_batches_by_size(self, memory_catalog) -> None:
        rows = [{"artist": f"Artist {i}", "title": f"Song {i}"} for i in range(25)]
        totals = await CatalogImporter(memory_catalog, batch_size=10).import_rows(
            rows, fields=["artist", "title"]
        )

        assert memory_catalog.bulk_calls == [10, 10, 5]
        assert totals.upserted == 25

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_abort(self, memory_catalog) -> None:
        memory_catalog.fail_batches = {0}
        rows = [{"artist": f"Artist {i}", "title": "Song"} for i in range(4)]
        totals = await CatalogImporter(memory_catalog, batch_size=2).import_rows(rows)

        assert totals.failed_batches == 1
        assert totals.upserted == 2
        assert len(memory_catalog.songs) == 2

    @pytest.mark.asyncio
    async def test_partial_write_errors_count_as_failed_batch(self) -> None:
        catalog = AsyncMock(spec=ICatalogProvider)
        catalog.bulk_upsert.return_value = BulkUpsertResult(upserted=1, write_errors=1)
        rows = [{"artist": "A", "title": "B"}, {"artist": "C", "title": "D"}]

        totals = await CatalogImporter(catalog).import_rows(rows)

        assert totals.failed_batches == 1
        assert totals.upserted == 1

    @pytest.mark.asyncio
    async def test_dry_run_never_writes(self) -> None:
        catalog = AsyncMock(spec=ICatalogProvider)
        rows = [{"artist": "A", "title": "B"}, {"artist": "", "title": "D"}]

        totals = await CatalogImporter(catalog, dry_run=True).import_rows(rows)

        catalog.bulk_upsert.assert_not_awaited()
        assert totals.read == 2
        assert totals.skipped == 1
        assert totals.upserted == 0

    @pytest.mark.asyncio
    async def test_schema_error_before_any_write(self) -> None:
        catalog = AsyncMock(spec=ICatalogProvider)
        with pytest.raises(CsvSchemaError):
            await CatalogImporter(catalog).import_bytes(b"foo,bar\n1,2\n")
        catalog.bulk_upsert.assert_not_awaited()
