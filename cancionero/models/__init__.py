"""Cancionero domain models — re-exports all public model classes.

The models are organized across two submodules by domain concern:
    - request.py — The live request queue (statuses, sources, performers)
    - song.py    — The imported song catalog and its search results
"""

from __future__ import annotations

from cancionero.models.request import (
    MAX_LENGTHS,
    PERFORMER_VALUES,
    SOURCE_VALUES,
    STATUS_VALUES,
    Performer,
    RequestListing,
    RequestSource,
    RequestStatus,
    SongRequest,
    StatusChange,
)
from cancionero.models.song import (
    ArtistCount,
    ArtistSongs,
    BulkUpsertResult,
    DuplicateGroup,
    ImportTotals,
    SongItem,
    SongPage,
    SongRecord,
)

__all__ = [
    "MAX_LENGTHS",
    "PERFORMER_VALUES",
    "SOURCE_VALUES",
    "STATUS_VALUES",
    "ArtistCount",
    "ArtistSongs",
    "BulkUpsertResult",
    "DuplicateGroup",
    "ImportTotals",
    "Performer",
    "RequestListing",
    "RequestSource",
    "RequestStatus",
    "SongItem",
    "SongPage",
    "SongRecord",
    "SongRequest",
    "StatusChange",
]
