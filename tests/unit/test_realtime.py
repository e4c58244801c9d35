"""Unit tests for the Socket.IO notifier and room handlers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import socketio

from cancionero.realtime.notifier import SocketIONotifier
from cancionero.realtime.socket_handlers import SocketEventHandlers, create_socket_server


@pytest.fixture
def mock_sio() -> MagicMock:
    sio = MagicMock(spec=socketio.AsyncServer)
    sio.emit = AsyncMock()
    sio.enter_room = AsyncMock()
    return sio


# ======================================================================
# SocketIONotifier
# ======================================================================


class TestSocketIONotifier:
    @pytest.mark.asyncio
    async def test_notify_admins(self, mock_sio) -> None:
        await SocketIONotifier(mock_sio).notify_admins("request:new", {"id": "1"})
        mock_sio.emit.assert_awaited_once_with("request:new", {"id": "1"}, to="admins")

    @pytest.mark.asyncio
    async def test_notify_watchers(self, mock_sio) -> None:
        await SocketIONotifier(mock_sio).notify_watchers("request:delete", {"id": "1"})
        mock_sio.emit.assert_awaited_once_with("request:delete", {"id": "1"}, to="requests")

    @pytest.mark.asyncio
    async def test_request_watchers_get_a_single_emission(self, mock_sio) -> None:
        await SocketIONotifier(mock_sio).notify_request_watchers("requests:clear")
        mock_sio.emit.assert_awaited_once_with("requests:clear", None, to=["admins", "requests"])

    @pytest.mark.asyncio
    async def test_emit_failure_is_swallowed(self, mock_sio) -> None:
        mock_sio.emit.side_effect = ConnectionError("transport closed")
        await SocketIONotifier(mock_sio).notify_request_watchers("request:update", {"id": "1"})


# ======================================================================
# SocketEventHandlers
# ======================================================================


class TestSocketEventHandlers:
    @pytest.mark.asyncio
    async def test_connect_joins_public(self, mock_sio) -> None:
        await SocketEventHandlers(mock_sio).on_connect("sid1", {})
        mock_sio.enter_room.assert_awaited_once_with("sid1", "public")

    @pytest.mark.asyncio
    async def test_identify_admin(self, mock_sio) -> None:
        await SocketEventHandlers(mock_sio).on_identify("sid1", {"role": "admin"})
        mock_sio.enter_room.assert_awaited_once_with("sid1", "admins")
        mock_sio.emit.assert_awaited_once_with("identify:ack", {"room": "admins"}, to="sid1")

    @pytest.mark.parametrize("data", [{"role": "guest"}, {}, None, "admin"])
    @pytest.mark.asyncio
    async def test_identify_anything_else_is_public(self, mock_sio, data) -> None:
        await SocketEventHandlers(mock_sio).on_identify("sid1", data)
        mock_sio.enter_room.assert_awaited_once_with("sid1", "public")
        mock_sio.emit.assert_awaited_once_with("identify:ack", {"room": "public"}, to="sid1")

    @pytest.mark.asyncio
    async def test_subscribe_requests_is_repeatable(self, mock_sio) -> None:
        handlers = SocketEventHandlers(mock_sio)
        await handlers.on_subscribe_requests("sid1")
        await handlers.on_subscribe_requests("sid1")
        assert mock_sio.enter_room.await_count == 2
        mock_sio.emit.assert_awaited_with("subscribe:ack", {"room": "requests"}, to="sid1")
        assert mock_sio.emit.await_count == 2

    @pytest.mark.asyncio
    async def test_ping_answers_with_server_time(self, mock_sio) -> None:
        await SocketEventHandlers(mock_sio).on_ping("sid1")
        event, payload = mock_sio.emit.await_args.args
        assert event == "pong:server"
        assert "T" in payload["at"]
        assert mock_sio.emit.await_args.kwargs == {"to": "sid1"}

    @pytest.mark.asyncio
    async def test_disconnect_is_quiet(self, mock_sio) -> None:
        await SocketEventHandlers(mock_sio).on_disconnect("sid1", "client disconnect")
        mock_sio.emit.assert_not_awaited()

    def test_register_binds_every_event(self, mock_sio) -> None:
        SocketEventHandlers(mock_sio).register()
        events = [c.args[0] for c in mock_sio.on.call_args_list]
        assert events == ["connect", "identify", "subscribe:requests", "ping:client", "disconnect"]


class TestCreateSocketServer:
    def test_asgi_server_with_handlers(self) -> None:
        sio = create_socket_server(["*"], ping_interval=10, ping_timeout=5)
        assert isinstance(sio, socketio.AsyncServer)
        assert "identify" in sio.handlers["/"]
        assert "ping:client" in sio.handlers["/"]


# ======================================================================
# Delivery through a real Socket.IO server
# ======================================================================


class TestRequestWatcherDelivery:
    """Room fan-out with the python-socketio manager, transport stubbed out."""

    @pytest.fixture
    def sio(self) -> socketio.AsyncServer:
        server = create_socket_server(["*"])
        server._send_eio_packet = AsyncMock()
        server._send_packet = AsyncMock()
        return server

    @staticmethod
    def _delivered_to(sio: socketio.AsyncServer) -> list[str]:
        calls = sio._send_eio_packet.await_args_list + sio._send_packet.await_args_list
        return sorted(c.args[0] for c in calls)

    @pytest.mark.asyncio
    async def test_client_in_both_rooms_gets_one_update(self, sio) -> None:
        sid = await sio.manager.connect("eio-admin", "/")
        await sio.enter_room(sid, "admins")
        await sio.enter_room(sid, "requests")

        await SocketIONotifier(sio).notify_request_watchers("request:update", {"id": "1", "status": "done"})

        assert len(list(sio.manager.get_participants("/", ["admins", "requests"]))) == 1
        assert self._delivered_to(sio) == ["eio-admin"]

    @pytest.mark.asyncio
    async def test_each_watcher_once_and_public_clients_skipped(self, sio) -> None:
        admin = await sio.manager.connect("eio-admin", "/")
        await sio.enter_room(admin, "admins")
        await sio.enter_room(admin, "requests")
        watcher = await sio.manager.connect("eio-watcher", "/")
        await sio.enter_room(watcher, "requests")
        guest = await sio.manager.connect("eio-guest", "/")
        await sio.enter_room(guest, "public")

        await SocketIONotifier(sio).notify_request_watchers("requests:clear")

        assert self._delivered_to(sio) == ["eio-admin", "eio-watcher"]
