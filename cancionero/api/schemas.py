"""Pydantic request/response schemas for the Cancionero API.

Defines the public contract of every REST endpoint: catalog search and
browse, request submission, the admin queue and health.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# The web client expects camelCase on the wire
# (``perPage``, ``fullName``).  Python attributes stay snake_case and
# ``Field(alias=...)`` maps between the two; FastAPI serializes
# ``response_model`` objects by alias.
#
# Request bodies are deliberately loose (every field optional, any JSON
# type, extra keys allowed).  The request service does the real
# validation so that ALL field problems come back in one 400 response
# instead of FastAPI's first-error 422.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cancionero.models.request import SongRequest
from cancionero.models.song import ArtistCount, SongItem


class SongListResponse(BaseModel):
    """One page of ``GET /api/songs`` results."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    per_page: int = Field(alias="perPage")
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    items: list[SongItem] = Field(default_factory=list)


class ArtistListResponse(BaseModel):
    items: list[ArtistCount] = Field(default_factory=list)


class ArtistSongItem(BaseModel):
    title: str


class ArtistSongsResponse(BaseModel):
    artist: str
    items: list[ArtistSongItem] = Field(default_factory=list)


class CreateRequestBody(BaseModel):
    """Public request form.  ``observaciones``/``obs`` are accepted for ``notes``."""

    model_config = ConfigDict(extra="allow")

    fullName: Any = None  # noqa: N815
    artist: Any = None
    title: Any = None
    notes: Any = None
    observaciones: Any = None
    obs: Any = None
    source: Any = None
    performer: Any = None


class CreateRequestResponse(BaseModel):
    ok: bool = True
    request: SongRequest


class StatusUpdateBody(BaseModel):
    status: Any = None


class RequestListResponse(BaseModel):
    """Admin queue listing plus counters for every status."""

    data: list[SongRequest] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=dict)


class DeleteResponse(BaseModel):
    ok: bool = True
    deleted: int


class PingResponse(BaseModel):
    ok: bool = True
    at: str


class HealthResponse(BaseModel):
    """Application health check response."""

    ok: bool = True
    status: str
    env: str
    version: str
    time: str


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``error`` is a stable machine-readable code (``VALIDATION_ERROR``,
    ``NOT_FOUND``...), ``message`` is human-readable, and ``details``
    lists per-field problems for validation errors.
    """

    error: str
    message: str | None = None
    details: list[dict[str, Any]] | None = None
