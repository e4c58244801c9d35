"""MongoDB-backed song catalog provider.

# ─── HOW THE CATALOG COLLECTION IS LAID OUT ──────────────────────────
#
# One document per song:
#
#   {artist, title, styles: [...],              ← display text
#    artistNorm, titleNorm, stylesNorm: [...]}  ← normalize() projections
#
# The unique (artistNorm, titleNorm) index makes the importer's upserts
# idempotent: re-importing the same CSV matches existing documents instead
# of inserting duplicates.  The (artistNorm, titleNorm, _id) index covers
# the paginated search sort.
#
# Search never touches the display fields.  Every query token becomes an
# escaped, case-insensitive $regex that must hit at least one of the three
# normalized fields; the tokens are AND-ed together.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, UpdateOne
from pymongo.errors import BulkWriteError, PyMongoError

from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.models.song import (
    ArtistCount,
    BulkUpsertResult,
    DuplicateGroup,
    SongItem,
    SongRecord,
)
from cancionero.utils.errors import StorageError
from cancionero.utils.logging import get_logger
from cancionero.utils.text_normalizer import escape_for_literal_match

_logger = get_logger(__name__)

_SEARCH_FIELDS = ("artistNorm", "titleNorm", "stylesNorm")
_SEARCH_SORT = [("artistNorm", ASCENDING), ("titleNorm", ASCENDING), ("_id", ASCENDING)]
_ITEM_PROJECTION = {"artist": 1, "title": 1, "styles": 1}


def _token_regex(token: str) -> dict[str, str]:
    return {"$regex": escape_for_literal_match(token), "$options": "i"}


def build_search_filter(tokens: list[str], styles: list[str]) -> dict[str, Any]:
    """Translate normalized tokens and styles into a MongoDB filter."""
    clauses: list[dict[str, Any]] = []
    for token in tokens:
        clauses.append({"$or": [{field: _token_regex(token)} for field in _SEARCH_FIELDS]})
    if styles:
        clauses.append({"stylesNorm": {"$in": list(styles)}})

    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class MongoCatalogProvider(ICatalogProvider):
    """Song catalog stored in a single MongoDB collection."""

    def __init__(self, database: AsyncIOMotorDatabase, collection_name: str = "songs") -> None:
        self._collection = database[collection_name]

    async def initialize(self) -> None:
        try:
            await self._collection.create_index("artistNorm")
            await self._collection.create_index("titleNorm")
            await self._collection.create_index("stylesNorm")
            await self._collection.create_index(
                [("artistNorm", ASCENDING), ("titleNorm", ASCENDING)],
                unique=True,
                name="artist_title_unique",
            )
            await self._collection.create_index(_SEARCH_SORT, name="artist_title_id")
        except PyMongoError as exc:
            raise StorageError(
                f"Could not create catalog indexes: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        _logger.info("catalog_indexes_ready", collection=self._collection.name)

    async def bulk_upsert(self, records: list[SongRecord]) -> BulkUpsertResult:
        if not records:
            return BulkUpsertResult()

        operations = [
            UpdateOne(
                {"artistNorm": record.artist_norm, "titleNorm": record.title_norm},
                {"$set": record.to_document()},
                upsert=True,
            )
            for record in records
        ]
        try:
            result = await self._collection.bulk_write(operations, ordered=False)
        except BulkWriteError as exc:
            # Unordered: the rest of the batch was still applied.
            details = exc.details or {}
            write_errors = details.get("writeErrors") or []
            _logger.warning(
                "catalog_bulk_write_partial",
                batch_size=len(records),
                write_errors=len(write_errors),
                first_error=write_errors[0].get("errmsg") if write_errors else None,
            )
            return BulkUpsertResult(
                upserted=details.get("nUpserted", 0),
                modified=details.get("nModified", 0),
                matched=details.get("nMatched", 0),
                write_errors=len(write_errors) or 1,
            )
        except PyMongoError as exc:
            raise StorageError(
                f"Catalog bulk write failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        return BulkUpsertResult(
            upserted=result.upserted_count,
            modified=result.modified_count,
            matched=result.matched_count,
        )

    async def delete_all(self) -> int:
        result = await self._collection.delete_many({})
        _logger.info("catalog_cleared", deleted=result.deleted_count)
        return result.deleted_count

    async def search(
        self,
        tokens: list[str],
        styles: list[str],
        skip: int,
        limit: int,
    ) -> tuple[list[SongItem], int]:
        query = build_search_filter(tokens, styles)
        total = await self._collection.count_documents(query)
        cursor = self._collection.find(
            query,
            _ITEM_PROJECTION,
            sort=_SEARCH_SORT,
            skip=skip,
            limit=limit,
        )
        docs = await cursor.to_list(length=None)
        return [SongItem.from_document(doc) for doc in docs], total

    async def list_artists(self, tokens: list[str]) -> list[ArtistCount]:
        pipeline: list[dict[str, Any]] = []
        if tokens:
            pipeline.append(
                {"$match": {"$and": [{"artistNorm": _token_regex(t)} for t in tokens]}}
            )
        pipeline.extend(
            [
                {
                    "$group": {
                        "_id": "$artistNorm",
                        "artist": {"$min": "$artist"},
                        "count": {"$sum": 1},
                    }
                },
                {"$project": {"_id": 0, "artist": 1, "count": 1}},
                {"$sort": {"artist": 1}},
            ]
        )
        docs = await self._collection.aggregate(pipeline).to_list(length=None)
        return [ArtistCount(artist=doc["artist"], count=doc["count"]) for doc in docs]

    async def songs_for_artist(self, artist_norm: str) -> list[dict[str, str]]:
        cursor = self._collection.find(
            {"artistNorm": artist_norm},
            {"_id": 0, "artist": 1, "title": 1},
            sort=[("titleNorm", ASCENDING), ("title", ASCENDING)],
        )
        docs = await cursor.to_list(length=None)
        return [{"artist": doc.get("artist", ""), "title": doc.get("title", "")} for doc in docs]

    async def find_duplicate_groups(self, limit: int = 10) -> list[DuplicateGroup]:
        pipeline = [
            {
                "$group": {
                    "_id": {"artistNorm": "$artistNorm", "titleNorm": "$titleNorm"},
                    "count": {"$sum": 1},
                    "ids": {"$push": "$_id"},
                }
            },
            {"$match": {"count": {"$gt": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": limit},
        ]
        docs = await self._collection.aggregate(pipeline).to_list(length=None)
        return [
            DuplicateGroup(
                artist_norm=doc["_id"].get("artistNorm") or "",
                title_norm=doc["_id"].get("titleNorm") or "",
                count=doc["count"],
                ids=[str(i) for i in doc.get("ids", [])],
            )
            for doc in docs
        ]

    async def count(self) -> int:
        return await self._collection.count_documents({})

    def get_provider_name(self) -> str:
        return "mongodb_catalog"
