"""Abstract base class for song request queue persistence.

The queue is small (one event's worth of requests) and written by the
public form and the admin console.  Validation and enum coercion live in
the request service; providers store and return what they are given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from cancionero.models.request import SongRequest


# Concrete implementation: MongoRequestProvider (cancionero/providers/requests/)
class IRequestProvider(ABC):
    """Contract for request queue storage.

    Identifiers are opaque strings at this boundary.  Implementations raise
    ``InvalidArgumentError`` for identifiers they cannot parse.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Ensure the collection's indexes exist (idempotent)."""

    @abstractmethod
    async def insert(self, fields: dict[str, Any]) -> SongRequest:
        """Persist a new request and return it with its assigned ``id``.

        Parameters
        ----------
        fields:
            Wire-named fields (``fullName``, ``artist``, ``title``, ``notes``,
            ``source``, ``performer``, ``status``, ``createdAt``,
            ``updatedAt``), already validated.
        """

    @abstractmethod
    async def list_requests(self, statuses: list[str] | None = None) -> list[SongRequest]:
        """Return requests newest first, optionally limited to *statuses*."""

    @abstractmethod
    async def count_by_status(self) -> dict[str, int]:
        """Return ``{status: count}`` over the whole collection.

        Statuses with no requests may be absent; callers fill in zeros.
        """

    @abstractmethod
    async def update_status(
        self,
        request_id: str,
        status: str,
        updated_at: datetime,
    ) -> SongRequest | None:
        """Set *status* and *updated_at* on one request.

        Returns
        -------
        SongRequest or None
            The document after the update, or ``None`` if no request has
            that id.
        """

    @abstractmethod
    async def delete(self, request_id: str) -> int:
        """Delete one request; returns 1 if it existed, else 0."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every request; returns how many were removed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
