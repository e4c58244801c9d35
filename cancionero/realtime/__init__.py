"""Realtime layer: Socket.IO room handlers and the notifier the services emit through."""

from cancionero.realtime.notifier import SocketIONotifier
from cancionero.realtime.socket_handlers import SocketEventHandlers, create_socket_server

__all__ = ["SocketEventHandlers", "SocketIONotifier", "create_socket_server"]
