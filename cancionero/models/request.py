"""Song request domain models — the live karaoke queue.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph, no imports from upper layers).
#
# A SongRequest is one attendee's "I want to sing X" entry.  It is created
# by the public form (source=public) or by the host's quick-add button
# (source=quick) and afterwards only its ``status`` changes, driven by the
# admin console.
#
# Key design decisions:
#   - **Immutable state**: models use ``frozen=True``.  A status change is a
#     new document read back from the store, never an in-place mutation.
#   - **Wire names**: fields are snake_case in Python and camelCase on the
#     wire/in MongoDB (``fullName``, ``createdAt``) via pydantic aliases.
#   - **Flat state machine**: every status may move to every other status.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RequestStatus(str, Enum):
    """Queue states shown as badges in the admin console."""

    PENDING = "pending"
    ON_STAGE = "on_stage"
    DONE = "done"
    NO_SHOW = "no_show"


class RequestSource(str, Enum):
    """Where the request came from."""

    PUBLIC = "public"
    QUICK = "quick"


class Performer(str, Enum):
    """Who is going to sing."""

    GUEST = "guest"
    HOST = "host"


STATUS_VALUES: tuple[str, ...] = tuple(s.value for s in RequestStatus)
SOURCE_VALUES: tuple[str, ...] = tuple(s.value for s in RequestSource)
PERFORMER_VALUES: tuple[str, ...] = tuple(p.value for p in Performer)

# Limits apply to the cleaned value (see text_normalizer.clean_text).
MAX_LENGTHS: dict[str, int] = {
    "fullName": 80,
    "artist": 120,
    "title": 180,
    "notes": 500,
}


class SongRequest(BaseModel):
    """A queued song request as stored and as sent to clients."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    full_name: str = Field(alias="fullName")
    artist: str
    title: str
    notes: str | None = None
    source: RequestSource = RequestSource.PUBLIC
    performer: Performer = Performer.GUEST
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> SongRequest:
        """Build a SongRequest from a raw MongoDB document (``_id`` included)."""
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["id"] = str(doc["_id"])
        return cls.model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and ISO-8601 timestamps."""
        return self.model_dump(mode="json", by_alias=True)


class StatusChange(BaseModel):
    """Payload broadcast when a request moves to a new status."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    status: RequestStatus
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RequestListing(BaseModel):
    """Admin queue listing plus per-status counters for the UI badges."""

    model_config = ConfigDict(frozen=True)

    data: list[SongRequest] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=dict)
