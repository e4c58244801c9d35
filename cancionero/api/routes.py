"""Public FastAPI routes: catalog search/browse, request submission, health.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/songs                            GET     Search the catalog (paginated)
# /api/artists                          GET     Artists with song counts
# /api/artists/{artist}/songs           GET     All titles for one artist
# /api/requests                         POST    Submit a song request
# /api/requests/quick                   POST    Host quick-add (source=quick)
# /api/health                           GET     Liveness + version
#
# Admin endpoints live in admin_routes.py behind the x-admin-key check.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Depends, Query, Request, Response

from cancionero.api.schemas import (
    ArtistListResponse,
    ArtistSongItem,
    ArtistSongsResponse,
    CreateRequestBody,
    CreateRequestResponse,
    HealthResponse,
    SongListResponse,
)
from cancionero.config.settings import Settings
from cancionero.services.catalog_service import CatalogService, parse_styles
from cancionero.services.request_service import RequestService
from cancionero.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")

_DEFAULT_SONGS_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=120"


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_catalog_service(request: Request) -> CatalogService:
    """Return the catalog read service from application state."""
    return request.app.state.catalog_service


def _get_request_service(request: Request) -> RequestService:
    """Return the request queue service from application state."""
    return request.app.state.request_service


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_config(request: Request) -> dict[str, Any]:
    return getattr(request.app.state, "config", None) or {}


CatalogServiceDep = Annotated[CatalogService, Depends(_get_catalog_service)]
RequestServiceDep = Annotated[RequestService, Depends(_get_request_service)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]
ConfigDep = Annotated[dict[str, Any], Depends(_get_config)]


def _body_fields(body: CreateRequestBody | None) -> dict[str, Any]:
    return body.model_dump() if body is not None else {}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get(
    "/songs",
    response_model=SongListResponse,
    summary="Search the song catalog",
)
async def list_songs(
    response: Response,
    catalog: CatalogServiceDep,
    config: ConfigDep,
    q: str = "",
    page: str | None = None,
    limit: str | None = None,
    style: Annotated[list[str] | None, Query()] = None,
    styles: str | None = None,
) -> SongListResponse:
    """Paginated search; every word of ``q`` must appear in artist, title or styles.

    ``limit=all`` (or ``0``) returns the whole result set, capped at
    ``SONGS_MAX_LIMIT``, as a single page.
    """
    result = await catalog.search(
        query=q,
        styles=parse_styles(style, styles),
        page=page,
        limit=limit,
    )

    cache_control = config.get("catalog", {}).get("cache_control") or _DEFAULT_SONGS_CACHE_CONTROL
    response.headers["Cache-Control"] = cache_control
    response.headers["X-Total-Count"] = str(result.total)

    return SongListResponse(
        page=result.page,
        per_page=result.per_page,
        total=result.total,
        total_pages=result.total_pages,
        has_next=result.has_next,
        items=result.items,
    )


@router.get(
    "/artists",
    response_model=ArtistListResponse,
    summary="List artists with their song counts",
)
async def list_artists(catalog: CatalogServiceDep, q: str = "") -> ArtistListResponse:
    return ArtistListResponse(items=await catalog.list_artists(q))


@router.get(
    "/artists/{artist:path}/songs",
    response_model=ArtistSongsResponse,
    summary="List every title for one artist",
)
async def list_artist_songs(artist: str, catalog: CatalogServiceDep) -> ArtistSongsResponse:
    result = await catalog.list_songs_for_artist(artist)
    return ArtistSongsResponse(
        artist=result.artist,
        items=[ArtistSongItem(title=item["title"]) for item in result.items],
    )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@router.post(
    "/requests",
    response_model=CreateRequestResponse,
    status_code=201,
    summary="Submit a song request",
)
async def create_request(
    requests: RequestServiceDep,
    body: Annotated[CreateRequestBody | None, Body()] = None,
) -> CreateRequestResponse:
    request = await requests.create(_body_fields(body))
    return CreateRequestResponse(ok=True, request=request)


@router.post(
    "/requests/quick",
    response_model=CreateRequestResponse,
    status_code=201,
    summary="Host quick-add (always source=quick, performer=host)",
)
async def create_quick_request(
    requests: RequestServiceDep,
    body: Annotated[CreateRequestBody | None, Body()] = None,
) -> CreateRequestResponse:
    request = await requests.create(_body_fields(body), quick=True)
    return CreateRequestResponse(ok=True, request=request)


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(settings: SettingsDep, config: ConfigDep) -> HealthResponse:
    """Return liveness, environment, version and server time."""
    return HealthResponse(
        ok=True,
        status="ok",
        env=settings.app_env,
        version=str(config.get("app", {}).get("version", "0.1.0")),
        time=datetime.now(timezone.utc).isoformat(),
    )
