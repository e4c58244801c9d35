"""Song catalog domain models.

Songs are written only by the offline CSV importer and are read-only for
the web API.  Each song keeps its display text (``artist``, ``title``,
``styles``) next to the normalized projections used for deduplication and
search (``artistNorm``, ``titleNorm``, ``stylesNorm``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SongRecord(BaseModel):
    """A catalog entry ready to be upserted by ``(artistNorm, titleNorm)``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artist: str
    title: str
    styles: list[str] = Field(default_factory=list)
    artist_norm: str = Field(alias="artistNorm")
    title_norm: str = Field(alias="titleNorm")
    styles_norm: list[str] = Field(default_factory=list, alias="stylesNorm")

    def to_document(self) -> dict[str, Any]:
        """Field dict as stored in MongoDB (camelCase keys)."""
        return self.model_dump(by_alias=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.artist_norm, self.title_norm)


class SongItem(BaseModel):
    """A song as listed by ``GET /api/songs``."""

    model_config = ConfigDict(frozen=True)

    id: str
    artist: str
    title: str
    styles: list[str] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> SongItem:
        return cls(
            id=str(doc["_id"]),
            artist=doc.get("artist", ""),
            title=doc.get("title", ""),
            styles=list(doc.get("styles") or []),
        )


class SongPage(BaseModel):
    """One page of catalog search results."""

    model_config = ConfigDict(frozen=True)

    items: list[SongItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 20
    total_pages: int = 1
    has_next: bool = False


class ArtistCount(BaseModel):
    """An artist and how many catalog songs it has."""

    model_config = ConfigDict(frozen=True)

    artist: str
    count: int


class ArtistSongs(BaseModel):
    """All titles for one artist."""

    model_config = ConfigDict(frozen=True)

    artist: str
    items: list[dict[str, str]] = Field(default_factory=list)


class DuplicateGroup(BaseModel):
    """Songs sharing one ``(artistNorm, titleNorm)`` key."""

    model_config = ConfigDict(frozen=True)

    artist_norm: str
    title_norm: str
    count: int
    ids: list[str] = Field(default_factory=list)


class BulkUpsertResult(BaseModel):
    """Counters reported by the store for one upsert batch."""

    model_config = ConfigDict(frozen=True)

    upserted: int = 0
    modified: int = 0
    matched: int = 0
    write_errors: int = 0


class ImportTotals(BaseModel):
    """Running totals for one catalog import.

    Mutable on purpose: the importer increments it row by row.
    """

    read: int = 0
    upserted: int = 0
    modified: int = 0
    matched: int = 0
    skipped: int = 0
    failed_batches: int = 0

    def add(self, result: BulkUpsertResult) -> None:
        self.upserted += result.upserted
        self.modified += result.modified
        self.matched += result.matched
