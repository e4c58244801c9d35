"""Socket.IO implementation of the realtime notifier.

Wraps a ``socketio.AsyncServer`` and emits to named rooms.  Emission is
best-effort: a transport failure is logged and swallowed so the REST call
that triggered it still answers normally.
"""

from __future__ import annotations

from typing import Any

import socketio

from cancionero.interfaces.notifier import ROOM_ADMINS, ROOM_REQUESTS, INotifier
from cancionero.utils.logging import get_logger

_logger = get_logger(__name__)


class SocketIONotifier(INotifier):
    """Room-scoped broadcaster over a python-socketio server."""

    def __init__(self, sio: socketio.AsyncServer) -> None:
        self._sio = sio

    async def notify_admins(self, event: str, payload: dict[str, Any] | None = None) -> None:
        await self._emit(event, payload, ROOM_ADMINS)

    async def notify_watchers(self, event: str, payload: dict[str, Any] | None = None) -> None:
        await self._emit(event, payload, ROOM_REQUESTS)

    async def notify_request_watchers(self, event: str, payload: dict[str, Any] | None = None) -> None:
        # A list of rooms is one emission; python-socketio delivers once per
        # client even when it has joined both rooms.
        await self._emit(event, payload, [ROOM_ADMINS, ROOM_REQUESTS])

    async def _emit(self, event: str, payload: dict[str, Any] | None, to: str | list[str]) -> None:
        try:
            await self._sio.emit(event, payload, to=to)
        except Exception as exc:
            _logger.warning("socket_emit_failed", event_name=event, rooms=to, error=str(exc))
            return
        _logger.debug("socket_emitted", event_name=event, rooms=to)
