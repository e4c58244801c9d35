"""MongoDB connection lifecycle shared by the API server and the import CLI.

One ``AsyncIOMotorClient`` is created per process and closed on shutdown.
The database name comes from ``MONGO_DB`` when set, else from the path
component of ``MONGO_URI``, else ``"cancionero"``.
"""

from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import PyMongoError

from cancionero.config.settings import Settings
from cancionero.utils.errors import ConfigurationError, StorageError
from cancionero.utils.logging import get_logger

_logger = get_logger(__name__)

DEFAULT_DB_NAME = "cancionero"


def create_mongo_client(settings: Settings) -> AsyncIOMotorClient:
    """Build the motor client.  No I/O happens until the first command."""
    if not settings.mongo_uri:
        raise ConfigurationError("MONGO_URI is not set", provider_name="mongodb")
    try:
        client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
            tz_aware=True,
        )
    except PyMongoConfigurationError as exc:
        raise ConfigurationError(f"Invalid MONGO_URI: {exc}", provider_name="mongodb") from exc
    return client


def get_database(client: AsyncIOMotorClient, settings: Settings) -> AsyncIOMotorDatabase:
    """Resolve the application database on *client*."""
    if settings.mongo_db:
        return client[settings.mongo_db]
    return client.get_default_database(default=DEFAULT_DB_NAME)


async def ping(database: AsyncIOMotorDatabase) -> None:
    """Round-trip to the server; raises StorageError when it is unreachable."""
    try:
        await database.command("ping")
    except PyMongoError as exc:
        raise StorageError(f"MongoDB unreachable: {exc}", provider_name="mongodb") from exc
    _logger.info("mongo_connected", database=database.name)


def close_mongo_client(client: AsyncIOMotorClient | None) -> None:
    if client is not None:
        client.close()
        _logger.info("mongo_closed")
