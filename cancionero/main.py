"""Cancionero ASGI application entry point.

Wires together the MongoDB providers, services, Socket.IO server and
routes via dependency injection.  Loads configuration from ``.env`` and
``config/config.yaml`` and configures structured logging.

# ─── HOW THE PIECES ARE ASSEMBLED ─────────────────────────────────────
#
#   uvicorn ──► socketio.ASGIApp ──┬── /socket.io/*  → Socket.IO server
#                                  └── everything else → FastAPI app
#
# The Socket.IO server is created with the FastAPI app (it has no I/O) and
# kept on ``app.state.sio``.  Everything that talks to MongoDB is built in
# the lifespan hook: one motor client, two providers, their indexes
# ensured once, then the services stored on ``app.state`` where the
# route dependencies find them.  The notifier is handed to the request
# service here; nothing reaches it through the Socket.IO server object.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import socketio
import structlog
import uvicorn
from fastapi import FastAPI

from cancionero.api.admin_routes import router as admin_router
from cancionero.api.middleware import (
    BodySizeLimitMiddleware,
    ErrorHandlingMiddleware,
    NoCacheMiddleware,
    RequestLoggingMiddleware,
    configure_compression,
    configure_cors,
    register_exception_handlers,
)
from cancionero.api.routes import router as api_router
from cancionero.config.loader import load_config
from cancionero.config.settings import Settings
from cancionero.providers.catalog.mongo_catalog_provider import MongoCatalogProvider
from cancionero.providers.mongo_client import (
    close_mongo_client,
    create_mongo_client,
    get_database,
    ping,
)
from cancionero.providers.requests.mongo_request_provider import MongoRequestProvider
from cancionero.realtime.notifier import SocketIONotifier
from cancionero.realtime.socket_handlers import create_socket_server
from cancionero.services.catalog_service import DEFAULT_PAGE_SIZE, CatalogService
from cancionero.services.request_service import RequestService
from cancionero.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


def _build_all(
    app_settings: Settings,
    app_config: dict[str, Any],
    sio: socketio.AsyncServer,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    mongo_client = create_mongo_client(app_settings)
    database = get_database(mongo_client, app_settings)

    # -- Providers --
    catalog_provider = MongoCatalogProvider(database)
    request_provider = MongoRequestProvider(database)
    notifier = SocketIONotifier(sio)

    # -- Services --
    catalog_cfg = app_config.get("catalog", {})
    catalog_service = CatalogService(
        catalog_provider,
        max_limit=app_settings.songs_max_limit,
        default_page_size=int(catalog_cfg.get("default_page_size", DEFAULT_PAGE_SIZE)),
    )
    request_service = RequestService(
        request_provider,
        notifier=notifier,
        strict_enums=app_settings.strict_enums,
    )

    return {
        "mongo_client": mongo_client,
        "database": database,
        "catalog_provider": catalog_provider,
        "request_provider": request_provider,
        "notifier": notifier,
        "catalog_service": catalog_service,
        "request_service": request_service,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Connect to MongoDB and ensure indexes on startup, disconnect on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings, application.state.config, application.state.sio)

    for key, value in components.items():
        setattr(application.state, key, value)

    try:
        await ping(components["database"])
        await components["catalog_provider"].initialize()
        await components["request_provider"].initialize()
    except Exception:
        close_mongo_client(components["mongo_client"])
        raise

    _logger.info(
        "app_startup",
        version=application.version,
        environment=app_settings.app_env,
        database=components["database"].name,
        socket_path=app_settings.socket_path,
        cors_origins=app_settings.get_allowed_origins(),
    )

    yield

    # -- Shutdown: close the shared motor client --
    close_mongo_client(components["mongo_client"])
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    app_config: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    No database connection is made here; that happens in the lifespan.
    """
    app_settings = app_settings or settings
    app_config = app_config if app_config is not None else config
    realtime_cfg = app_config.get("realtime", {})
    http_cfg = app_config.get("http", {})
    allowed_origins = app_settings.get_allowed_origins()

    application = FastAPI(
        title="Cancionero API",
        version=str(app_config.get("app", {}).get("version", "0.1.0")),
        description=(
            "Karaoke night backend: search the song catalog, submit song "
            "requests, and run the live request queue from the admin console."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.config = app_config
    application.state.sio = create_socket_server(
        allowed_origins,
        ping_interval=int(realtime_cfg.get("ping_interval", 20)),
        ping_timeout=int(realtime_cfg.get("ping_timeout", 20)),
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(NoCacheMiddleware, path_prefix="/api/admin")
    application.add_middleware(
        BodySizeLimitMiddleware,
        max_bytes=int(http_cfg.get("max_body_bytes", 1_048_576)),
    )
    application.add_middleware(RequestLoggingMiddleware)
    configure_compression(application, minimum_size=int(http_cfg.get("gzip_minimum_size", 1000)))
    configure_cors(application, allowed_origins=allowed_origins)
    register_exception_handlers(application)

    # -- API routes --
    application.include_router(api_router)
    application.include_router(admin_router)

    return application


def create_asgi_app(application: FastAPI) -> socketio.ASGIApp:
    """Mount the Socket.IO server in front of *application*."""
    app_settings: Settings = application.state.settings
    return socketio.ASGIApp(
        application.state.sio,
        other_asgi_app=application,
        socketio_path=app_settings.socket_path.strip("/") or "socket.io",
    )


fastapi_app = create_app()
app = create_asgi_app(fastapi_app)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    uvicorn.run(
        "cancionero.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    main()
