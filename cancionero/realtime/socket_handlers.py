"""Socket.IO event handlers: room membership and liveness.

# ─── HOW CLIENTS JOIN ROOMS ───────────────────────────────────────────
#
#   client                                   server
#   ──────                                   ──────
#   connect                      ──────→    enter "public"
#   identify {role: "admin"}     ──────→    enter "admins"
#                                ←──────    identify:ack {room: "admins"}
#   subscribe:requests           ──────→    enter "requests"
#                                ←──────    subscribe:ack {room: "requests"}
#   ping:client                  ──────→
#                                ←──────    pong:server {at: "<ISO time>"}
#
# Any role other than "admin" lands in "public".  Joining a room twice is
# harmless; the ack is sent every time.  Nothing is replayed on join:
# events emitted while a client was offline are lost.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import socketio

from cancionero.interfaces.notifier import ROOM_ADMINS, ROOM_PUBLIC, ROOM_REQUESTS
from cancionero.utils.logging import get_logger

_logger = get_logger(__name__)


class SocketEventHandlers:
    """Binds the client→server events to a ``socketio.AsyncServer``."""

    def __init__(self, sio: socketio.AsyncServer) -> None:
        self._sio = sio

    def register(self) -> None:
        self._sio.on("connect", handler=self.on_connect)
        self._sio.on("identify", handler=self.on_identify)
        self._sio.on("subscribe:requests", handler=self.on_subscribe_requests)
        self._sio.on("ping:client", handler=self.on_ping)
        self._sio.on("disconnect", handler=self.on_disconnect)

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        await self._sio.enter_room(sid, ROOM_PUBLIC)
        _logger.info("socket_connected", sid=sid)

    async def on_identify(self, sid: str, data: Any = None) -> None:
        role = data.get("role") if isinstance(data, dict) else None
        room = ROOM_ADMINS if role == "admin" else ROOM_PUBLIC
        await self._sio.enter_room(sid, room)
        _logger.info("socket_identified", sid=sid, room=room)
        await self._sio.emit("identify:ack", {"room": room}, to=sid)

    async def on_subscribe_requests(self, sid: str, data: Any = None) -> None:
        await self._sio.enter_room(sid, ROOM_REQUESTS)
        await self._sio.emit("subscribe:ack", {"room": ROOM_REQUESTS}, to=sid)

    async def on_ping(self, sid: str, data: Any = None) -> None:
        await self._sio.emit(
            "pong:server",
            {"at": datetime.now(timezone.utc).isoformat()},
            to=sid,
        )

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        _logger.info("socket_disconnected", sid=sid, reason=str(reason) if reason else None)


def create_socket_server(
    allowed_origins: list[str],
    ping_interval: int = 20,
    ping_timeout: int = 20,
) -> socketio.AsyncServer:
    """Build the ASGI Socket.IO server with its handlers registered."""
    cors = "*" if allowed_origins == ["*"] else allowed_origins
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors,
        ping_interval=ping_interval,
        ping_timeout=ping_timeout,
    )
    SocketEventHandlers(sio).register()
    return sio
