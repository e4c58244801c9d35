"""Admin console routes: the live request queue.

Every route here requires the ``x-admin-key`` header (see ``api.auth``)
and is answered with no-store cache headers (``NoCacheMiddleware``).

# ─── ADMIN ROUTE MAP ──────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/admin/ping                       GET     Key check / latency probe
# /api/admin/requests?status=a,b        GET     Queue (newest first) + counts
# /api/admin/requests/{id}/status       PATCH   Move a request to a new status
# /api/admin/requests/{id}              DELETE  Remove one request
# /api/admin/requests                   DELETE  Clear the whole queue
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query

from cancionero.api.auth import require_admin_key
from cancionero.api.routes import RequestServiceDep
from cancionero.api.schemas import (
    DeleteResponse,
    PingResponse,
    RequestListResponse,
    StatusUpdateBody,
)
from cancionero.models.request import SongRequest

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin_key)])


@router.get("/ping", response_model=PingResponse, summary="Admin key check")
async def ping() -> PingResponse:
    return PingResponse(ok=True, at=datetime.now(timezone.utc).isoformat())


@router.get(
    "/requests",
    response_model=RequestListResponse,
    summary="List the request queue",
)
async def list_requests(
    requests: RequestServiceDep,
    status: Annotated[list[str] | None, Query()] = None,
) -> RequestListResponse:
    """``status`` takes a comma-separated list and may be repeated."""
    listing = await requests.list_requests(status)
    return RequestListResponse(data=listing.data, counts=listing.counts)


@router.patch(
    "/requests/{request_id}/status",
    response_model=SongRequest,
    summary="Change a request's status",
)
async def update_request_status(
    request_id: str,
    requests: RequestServiceDep,
    body: Annotated[StatusUpdateBody | None, Body()] = None,
) -> SongRequest:
    return await requests.set_status(request_id, body.status if body is not None else None)


@router.delete(
    "/requests/{request_id}",
    response_model=DeleteResponse,
    summary="Delete one request",
)
async def delete_request(request_id: str, requests: RequestServiceDep) -> DeleteResponse:
    deleted = await requests.remove(request_id)
    return DeleteResponse(ok=True, deleted=deleted)


@router.delete(
    "/requests",
    response_model=DeleteResponse,
    summary="Delete every request",
)
async def delete_all_requests(requests: RequestServiceDep) -> DeleteResponse:
    deleted = await requests.remove_all()
    return DeleteResponse(ok=True, deleted=deleted)
