from __future__ import annotations

from flask_socketio import SocketIO


class SocketIOTransport:
    """Delivers engine events: room broadcasts and per-player unicasts.

    Every client is auto-joined to a Socket.IO room named after its sid, so
    a unicast is an emit to that sid.
    """

    def __init__(self, socketio: SocketIO) -> None:
        self.socketio = socketio

    def broadcast(self, room_id: str, event: str, payload=None) -> None:
        self.socketio.emit(event, payload, to=room_id)

    def send(self, player_id: str, event: str, payload=None) -> None:
        self.socketio.emit(event, payload, to=player_id)
