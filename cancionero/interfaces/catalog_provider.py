"""Abstract base class for song catalog persistence providers.

Defines the contract for the imported song catalog: bulk upserts keyed by
the normalized ``(artistNorm, titleNorm)`` pair, plus the read queries the
public API needs (token search, artist browse).  The adapter pattern keeps
MongoDB specifics out of the importer and the catalog service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cancionero.models.song import (
    ArtistCount,
    BulkUpsertResult,
    DuplicateGroup,
    SongItem,
    SongRecord,
)


# Concrete implementation: MongoCatalogProvider (cancionero/providers/catalog/)
# Written by the import CLI, read by the /api/songs and /api/artists routes.
class ICatalogProvider(ABC):
    """Contract for song catalog storage.

    All operations are async to support network-backed stores.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Ensure the collection's indexes exist.

        Called once per process (application lifespan or CLI run).
        Must be idempotent.
        """

    @abstractmethod
    async def bulk_upsert(self, records: list[SongRecord]) -> BulkUpsertResult:
        """Upsert *records* by ``(artistNorm, titleNorm)`` in one round-trip.

        Parameters
        ----------
        records:
            Catalog entries to write.  Existing documents with the same key
            have their fields replaced; others are inserted.

        Returns
        -------
        BulkUpsertResult
            Counters reported by the store.  A partially failed batch is
            reported through ``write_errors`` rather than raised.

        Raises
        ------
        StorageError
            If the store cannot be reached at all.
        """

    @abstractmethod
    async def delete_all(self) -> int:
        """Remove every song and return how many were deleted."""

    @abstractmethod
    async def search(
        self,
        tokens: list[str],
        styles: list[str],
        skip: int,
        limit: int,
    ) -> tuple[list[SongItem], int]:
        """Return one page of songs matching every token and any style.

        Parameters
        ----------
        tokens:
            Normalized query tokens.  Each must appear (as a substring) in
            at least one of artistNorm, titleNorm or stylesNorm.
        styles:
            Normalized style names; when non-empty, songs must carry at
            least one of them.
        skip:
            Number of matching songs to skip.
        limit:
            Maximum number of songs to return.

        Returns
        -------
        tuple[list[SongItem], int]
            The page sorted by artistNorm, titleNorm, _id and the total
            number of matching songs.
        """

    @abstractmethod
    async def list_artists(self, tokens: list[str]) -> list[ArtistCount]:
        """Group songs by normalized artist, optionally filtered by *tokens*.

        Returns artists sorted by display name, each with its song count.
        """

    @abstractmethod
    async def songs_for_artist(self, artist_norm: str) -> list[dict[str, str]]:
        """Return ``{"artist", "title"}`` dicts for one normalized artist,
        sorted by titleNorm then title."""

    @abstractmethod
    async def find_duplicate_groups(self, limit: int = 10) -> list[DuplicateGroup]:
        """Return up to *limit* key groups holding more than one document."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of songs in the catalog."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
