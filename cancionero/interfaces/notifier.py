"""Abstract base class for realtime notification fan-out.

A notifier pushes events to groups of connected clients ("rooms").  It
never mutates state and never raises into its caller: delivery is
best-effort and at-most-once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# Room names shared by the notifier and the socket event handlers.
ROOM_PUBLIC = "public"
ROOM_ADMINS = "admins"
ROOM_REQUESTS = "requests"


class INotifier(ABC):
    """Contract for broadcasting events to client rooms."""

    @abstractmethod
    async def notify_admins(self, event: str, payload: dict[str, Any] | None = None) -> None:
        """Send *event* to every client in the admins room."""

    @abstractmethod
    async def notify_watchers(self, event: str, payload: dict[str, Any] | None = None) -> None:
        """Send *event* to every client subscribed to the requests room."""

    @abstractmethod
    async def notify_request_watchers(self, event: str, payload: dict[str, Any] | None = None) -> None:
        """Send *event* once to the union of the admins and requests rooms.

        A client that sits in both rooms receives the event exactly once.
        """
