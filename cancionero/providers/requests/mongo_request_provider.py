"""MongoDB-backed song request queue provider.

Stores one document per request with wire-named fields (``fullName``,
``createdAt``...).  ObjectIds never leave this module: callers pass and
receive their 24-character hex form.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from cancionero.interfaces.request_provider import IRequestProvider
from cancionero.models.request import SongRequest
from cancionero.utils.errors import InvalidArgumentError, StorageError
from cancionero.utils.logging import get_logger

_logger = get_logger(__name__)

_NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def _object_id(request_id: str) -> ObjectId:
    if not isinstance(request_id, str) or not ObjectId.is_valid(request_id):
        raise InvalidArgumentError(
            "Invalid request id",
            details=[{"field": "id", "message": "must be a 24-character hex id"}],
        )
    return ObjectId(request_id)


class MongoRequestProvider(IRequestProvider):
    """Request queue stored in a single MongoDB collection."""

    def __init__(self, database: AsyncIOMotorDatabase, collection_name: str = "requests") -> None:
        self._collection = database[collection_name]

    async def initialize(self) -> None:
        try:
            await self._collection.create_index([("createdAt", DESCENDING)])
            await self._collection.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            await self._collection.create_index([("source", ASCENDING), ("createdAt", DESCENDING)])
            await self._collection.create_index(
                [("performer", ASCENDING), ("createdAt", DESCENDING)]
            )
        except PyMongoError as exc:
            raise StorageError(
                f"Could not create request indexes: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        _logger.info("request_indexes_ready", collection=self._collection.name)

    async def insert(self, fields: dict[str, Any]) -> SongRequest:
        doc = dict(fields)
        try:
            result = await self._collection.insert_one(doc)
        except PyMongoError as exc:
            raise StorageError(
                f"Could not store request: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        doc["_id"] = result.inserted_id
        return SongRequest.from_document(doc)

    async def list_requests(self, statuses: list[str] | None = None) -> list[SongRequest]:
        query: dict[str, Any] = {"status": {"$in": list(statuses)}} if statuses else {}
        cursor = self._collection.find(query, sort=_NEWEST_FIRST)
        docs = await cursor.to_list(length=None)
        return [SongRequest.from_document(doc) for doc in docs]

    async def count_by_status(self) -> dict[str, int]:
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        docs = await self._collection.aggregate(pipeline).to_list(length=None)
        return {doc["_id"]: doc["count"] for doc in docs if doc.get("_id") is not None}

    async def update_status(
        self,
        request_id: str,
        status: str,
        updated_at: datetime,
    ) -> SongRequest | None:
        oid = _object_id(request_id)
        doc = await self._collection.find_one_and_update(
            {"_id": oid},
            {"$set": {"status": status, "updatedAt": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return SongRequest.from_document(doc)

    async def delete(self, request_id: str) -> int:
        oid = _object_id(request_id)
        result = await self._collection.delete_one({"_id": oid})
        return result.deleted_count

    async def delete_all(self) -> int:
        result = await self._collection.delete_many({})
        return result.deleted_count

    def get_provider_name(self) -> str:
        return "mongodb_requests"
