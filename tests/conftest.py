"""Shared pytest fixtures for the cancionero test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from mongomock_motor import AsyncMongoMockClient

from cancionero.config.settings import Settings
from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.interfaces.notifier import INotifier
from cancionero.models.song import (
    ArtistCount,
    BulkUpsertResult,
    DuplicateGroup,
    SongItem,
    SongRecord,
)
from cancionero.providers.catalog.mongo_catalog_provider import MongoCatalogProvider
from cancionero.providers.requests.mongo_request_provider import MongoRequestProvider
from cancionero.services.catalog_importer import build_song_record
from cancionero.services.request_service import RequestService
from cancionero.utils.errors import StorageError

FIXED_NOW = datetime(2025, 3, 14, 21, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory catalog double
# ---------------------------------------------------------------------------


class InMemoryCatalog(ICatalogProvider):
    """Dict-backed catalog keyed by (artistNorm, titleNorm).

    Mirrors the upsert semantics of the MongoDB provider closely enough
    for importer and CLI tests.
    """

    def __init__(self) -> None:
        self.songs: dict[tuple[str, str], SongRecord] = {}
        self.initialized = 0
        self.bulk_calls: list[int] = []
        self.fail_batches: set[int] = set()

    async def initialize(self) -> None:
        self.initialized += 1

    async def bulk_upsert(self, records: list[SongRecord]) -> BulkUpsertResult:
        call_no = len(self.bulk_calls)
        self.bulk_calls.append(len(records))
        if call_no in self.fail_batches:
            raise StorageError("simulated batch failure", provider_name="memory")

        upserted = matched = modified = 0
        for record in records:
            existing = self.songs.get(record.key)
            if existing is None:
                upserted += 1
            else:
                matched += 1
                if existing != record:
                    modified += 1
            self.songs[record.key] = record
        return BulkUpsertResult(upserted=upserted, modified=modified, matched=matched)

    async def delete_all(self) -> int:
        deleted = len(self.songs)
        self.songs.clear()
        return deleted

    async def search(
        self,
        tokens: list[str],
        styles: list[str],
        skip: int,
        limit: int,
    ) -> tuple[list[SongItem], int]:
        raise NotImplementedError

    async def list_artists(self, tokens: list[str]) -> list[ArtistCount]:
        raise NotImplementedError

    async def songs_for_artist(self, artist_norm: str) -> list[dict[str, str]]:
        raise NotImplementedError

    async def find_duplicate_groups(self, limit: int = 10) -> list[DuplicateGroup]:
        return []

    async def count(self) -> int:
        return len(self.songs)

    def get_provider_name(self) -> str:
        return "memory"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def test_settings() -> Settings:
    """Settings with an admin key and no .env influence on the fields tests rely on."""
    return Settings(
        mongo_uri="mongodb://localhost:27017/cancionero_test",
        admin_key="s3cret",
        client_origin="*",
        cors_origins="",
        songs_max_limit=2000,
        strict_enums=False,
        csv_path="",
        csv_encoding="auto",
        app_env="test",
    )


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a minimal configuration dict shaped like config/config.yaml."""
    return {
        "app": {"name": "cancionero", "version": "0.1.0"},
        "catalog": {
            "default_page_size": 20,
            "max_limit": 2000,
            "cache_control": "public, max-age=60, stale-while-revalidate=120",
        },
        "importer": {
            "batch_size": 1000,
            "progress_every": 5000,
            "duplicate_report_limit": 10,
            "encoding": "auto",
        },
        "http": {"max_body_bytes": 1_048_576, "gzip_minimum_size": 1000},
        "realtime": {"path": "/socket.io", "ping_interval": 20, "ping_timeout": 20},
        "logging": {"level": "INFO"},
    }


@pytest.fixture
def mongo_db():
    """Fresh in-memory MongoDB database per test."""
    return AsyncMongoMockClient()["cancionero_test"]


@pytest.fixture
def catalog_provider(mongo_db) -> MongoCatalogProvider:
    return MongoCatalogProvider(mongo_db)


@pytest.fixture
def request_provider(mongo_db) -> MongoRequestProvider:
    return MongoRequestProvider(mongo_db)


@pytest.fixture
def memory_catalog() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture
def mock_notifier() -> AsyncMock:
    """Notifier double that records every broadcast."""
    return AsyncMock(spec=INotifier)


@pytest.fixture
def request_service(request_provider, mock_notifier) -> RequestService:
    return RequestService(request_provider, notifier=mock_notifier, clock=lambda: FIXED_NOW)


def _song_document(artist: str, title: str, styles: list[str] | None = None) -> dict[str, Any]:
    record = build_song_record(artist, title, ";".join(styles or []))
    assert record is not None
    return record.to_document()


@pytest.fixture
def make_song():
    """Factory building a catalog document the way the importer stores it."""
    return _song_document
