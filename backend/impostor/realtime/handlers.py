from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game import errors
from ..game.errors import GameError
from ..game.models import SKIP
from ..game.service import GameService
from . import events

logger = logging.getLogger(__name__)


def _room_code(payload: dict) -> str:
    return str(payload.get("roomId", "")).strip().upper()


def register_socketio_handlers(socketio: SocketIO, service: GameService) -> None:
    def _safely(action: Callable[[], Any]) -> Any:
        """Run one action; errors go back to the caller, never further."""
        try:
            return action()
        except GameError as exc:
            emit(events.ERROR, exc.to_payload())
        except Exception:
            logger.exception("Unhandled error for sid %s", request.sid)
            emit(events.ERROR, {"code": errors.INTERNAL_ERROR, "message": "Internal error"})
        return None

    def _joined(room_id: str) -> None:
        join_room(room_id)
        emit(events.ROOM_JOINED, {"roomId": room_id, "gameState": service.public_state(room_id)})

    @socketio.on(events.CREATE_ROOM)
    def room_create(data):
        payload = data or {}
        name = payload.get("playerName", "")

        room = _safely(lambda: service.create_room(request.sid, name))
        if room is None:
            return
        _joined(room.id)

    @socketio.on(events.JOIN_ROOM)
    def room_join(data):
        payload = data or {}
        room_code = _room_code(payload)
        name = payload.get("playerName", "")

        if not room_code:
            emit(events.ERROR, {"code": errors.INVALID_PAYLOAD, "message": "Room code is required"})
            return

        room = _safely(lambda: service.join_room(request.sid, room_code, name))
        if room is None:
            return
        _joined(room.id)
        _safely(lambda: service.broadcast_room(room.id))

    @socketio.on(events.LEAVE_ROOM)
    def room_leave(data):
        room = _safely(lambda: service.leave(request.sid))
        if room is None:
            return
        leave_room(room.id)
        emit(events.ROOM_LEFT, {"roomId": room.id})

    @socketio.on(events.START_GAME)
    def game_start(data):
        payload = data or {}
        _safely(lambda: service.start_game(request.sid, _room_code(payload)))

    @socketio.on(events.RESTART_ROUND)
    def game_restart(data):
        payload = data or {}
        _safely(lambda: service.restart_game(request.sid, _room_code(payload)))

    @socketio.on(events.SUBMIT_CLUE)
    def clue_submit(data):
        payload = data or {}
        _safely(lambda: service.submit_clue(request.sid, _room_code(payload), payload.get("clue", "")))

    @socketio.on(events.VOTE_PLAYER)
    def vote_player(data):
        payload = data or {}
        target_id = payload.get("targetId") or SKIP
        _safely(lambda: service.cast_vote(request.sid, _room_code(payload), str(target_id)))

    @socketio.on(events.IMPOSTOR_GUESS)
    def impostor_guess(data):
        payload = data or {}
        _safely(lambda: service.guess_word(request.sid, _room_code(payload), payload.get("wordIndex")))

    @socketio.on(events.STEAL_LIFE)
    def steal_life(data):
        payload = data or {}
        target_id = payload.get("targetId") or None
        _safely(lambda: service.steal_life(request.sid, _room_code(payload), target_id))

    @socketio.on(events.HEAD_TO_HEAD_ACTION)
    def head_to_head_action(data):
        payload = data or {}
        _safely(lambda: service.duel_action(request.sid, _room_code(payload), payload.get("buttonIndex")))

    @socketio.on("disconnect")
    def on_disconnect(*args):
        try:
            service.leave(request.sid)
        except Exception:
            logger.exception("Cleanup failed for sid %s", request.sid)
