from __future__ import annotations

import logging
import random
from threading import RLock

from ..config import Config
from ..utils.codes import generate_room_code, normalize_room_code
from . import errors
from .engine import PhaseEngine
from .errors import NotFoundError, StateConflict, ValidationError
from .models import Player, Room
from .timers import RoomTimers, Scheduler
from .visibility import room_public_state
from .words import load_categories

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Room code -> Room. Not thread-safe on its own; the service locks."""

    def __init__(self, rng=None) -> None:
        self._rooms: dict[str, Room] = {}
        self._rng = rng

    def create(self) -> Room:
        code = generate_room_code(self._rooms, rng=self._rng)
        room = Room(id=code)
        self._rooms[code] = room
        return room

    def get(self, code: str) -> Room | None:
        return self._rooms.get(normalize_room_code(code))

    def delete(self, code: str) -> bool:
        code = normalize_room_code(code)
        if code in self._rooms:
            del self._rooms[code]
            return True
        return False

    def list(self) -> list[Room]:
        return list(self._rooms.values())

    def find_by_player(self, player_id: str) -> Room | None:
        for room in self._rooms.values():
            p = room.get_player(player_id)
            if p is not None and p.connected:
                return room
        return None

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return normalize_room_code(code) in self._rooms


class GameService:
    """Entry point for every player action.

    Each public method takes the service lock for its whole duration, and so
    does every timer callback, so no two updates ever interleave.
    """

    def __init__(
        self,
        transport,
        scheduler: Scheduler,
        config=Config,
        categories: list[dict] | None = None,
        rng=None,
    ) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self._lock = RLock()
        self.registry = RoomRegistry(rng=self.rng)
        self.timers = RoomTimers(scheduler, self.registry.get, self._lock)
        if categories is None:
            categories = load_categories(getattr(config, "WORDS_FILE", ""), config.WORDS_PER_ROUND)
        self.engine = PhaseEngine(transport, self.timers, config, categories, rng=self.rng)

    @property
    def lock(self) -> RLock:
        return self._lock

    # ---- queries ----

    def get_room(self, code: str) -> Room | None:
        with self._lock:
            return self.registry.get(code)

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return self.registry.list()

    def public_state(self, code: str) -> dict | None:
        with self._lock:
            room = self.registry.get(code)
            return room_public_state(room) if room else None

    def room_of(self, player_id: str) -> Room | None:
        with self._lock:
            return self.registry.find_by_player(player_id)

    def broadcast_room(self, code: str) -> None:
        with self._lock:
            room = self.registry.get(code)
            if room:
                self.engine.broadcast_room(room)

    # ---- lobby ----

    def _validate_name(self, name) -> str:
        n = str(name or "").strip()
        if not n or len(n) > self.config.MAX_NAME_LENGTH:
            raise ValidationError(errors.INVALID_NAME, "Invalid name")
        # Avoid obvious HTML/script injection.
        if "<" in n or ">" in n:
            raise ValidationError(errors.INVALID_NAME, "Invalid name")
        # No control characters.
        for ch in n:
            if ord(ch) < 32:
                raise ValidationError(errors.INVALID_NAME, "Invalid name")
        return n

    def _require_room(self, code: str) -> Room:
        room = self.registry.get(code)
        if room is None:
            raise NotFoundError(errors.ROOM_NOT_FOUND, "Room not found")
        return room

    def create_room(self, player_id: str, player_name) -> Room:
        with self._lock:
            name = self._validate_name(player_name)
            if self.registry.find_by_player(player_id):
                raise StateConflict(errors.ALREADY_IN_ROOM, "Already in a room")

            room = self.registry.create()
            room.players.append(Player(id=player_id, name=name, is_host=True, lives=self.config.MAX_LIVES))
            logger.info("Room %s created by %s", room.id, name)
            return room

    def join_room(self, player_id: str, room_code, player_name) -> Room:
        with self._lock:
            name = self._validate_name(player_name)
            room = self._require_room(str(room_code or ""))

            if self.registry.find_by_player(player_id):
                raise StateConflict(errors.ALREADY_IN_ROOM, "Already in a room")
            if room.phase != "LOBBY":
                raise StateConflict(errors.GAME_ALREADY_STARTED, "Game already started")
            if len(room.players) >= self.config.MAX_PLAYERS:
                raise StateConflict(errors.ROOM_FULL, "Room is full")
            if any(p.name.casefold() == name.casefold() for p in room.players):
                raise StateConflict(errors.NAME_TAKEN, "Name already taken in this room")

            room.players.append(Player(
                id=player_id,
                name=name,
                is_host=not room.players,
                lives=self.config.MAX_LIVES,
            ))
            logger.info("%s joined room %s", name, room.id)
            return room

    def _require_host(self, room: Room, player_id: str) -> None:
        host = room.host()
        if host is None or host.id != player_id:
            raise StateConflict(errors.ONLY_HOST, "Only the host can start the game")

    def _require_players(self, players: list[Player]) -> None:
        if len(players) < self.config.MIN_PLAYERS:
            raise StateConflict(
                errors.NOT_ENOUGH_PLAYERS,
                f"Need at least {self.config.MIN_PLAYERS} players",
            )

    def start_game(self, player_id: str, room_code) -> Room:
        with self._lock:
            room = self._require_room(str(room_code or ""))
            if room.phase != "LOBBY":
                raise StateConflict(errors.GAME_ALREADY_STARTED, "Game already started")
            self._require_host(room, player_id)
            self._require_players(room.living_players())

            logger.info("Room %s: match started with %d players", room.id, len(room.players))
            self.engine.begin_round(room)
            return room

    def restart_game(self, player_id: str, room_code) -> Room:
        with self._lock:
            room = self._require_room(str(room_code or ""))
            if room.phase not in ("LOBBY", "GAME_OVER"):
                raise StateConflict(errors.GAME_ALREADY_STARTED, "Game already started")

            self._require_host(room, player_id)
            if room.phase == "GAME_OVER":
                # Everyone still connected is back in once the room resets.
                self._require_players([p for p in room.players if p.connected])
                self.engine.reset_to_lobby(room)
            else:
                self._require_players(room.living_players())

            logger.info("Room %s: match restarted", room.id)
            self.engine.begin_round(room)
            return room

    # ---- in-game actions ----

    def _act(self, player_id: str, room_code, action, *args) -> bool:
        with self._lock:
            room = self.registry.get(str(room_code or ""))
            if room is None:
                logger.debug("%s from %s: no room %r", action.__name__, player_id, room_code)
                return False
            changed = action(room, player_id, *args)
            if not changed:
                logger.debug("Room %s: %s from %s ignored in %s", room.id, action.__name__, player_id, room.phase)
            return changed

    def submit_clue(self, player_id: str, room_code, text) -> bool:
        return self._act(player_id, room_code, self.engine.submit_clue, text)

    def cast_vote(self, player_id: str, room_code, target_id) -> bool:
        return self._act(player_id, room_code, self.engine.cast_vote, target_id)

    def guess_word(self, player_id: str, room_code, word_index) -> bool:
        return self._act(player_id, room_code, self.engine.guess_word, word_index)

    def steal_life(self, player_id: str, room_code, target_id) -> bool:
        return self._act(player_id, room_code, self.engine.steal_life, target_id)

    def duel_action(self, player_id: str, room_code, button_index) -> bool:
        return self._act(player_id, room_code, self.engine.duel.press, button_index)

    # ---- leaving ----

    def leave(self, player_id: str) -> Room | None:
        """Remove a player from whatever room they are in.

        In the lobby the player is dropped and an empty room destroyed.
        Mid-match the player forfeits; the room is destroyed once nobody
        connected is left.
        """
        with self._lock:
            room = self.registry.find_by_player(player_id)
            if room is None:
                return None
            player = room.get_player(player_id)

            if room.phase == "LOBBY":
                room.players.remove(player)
                if not room.players:
                    self._destroy(room)
                    return room
                if player.is_host:
                    room.players[0].is_host = True
                logger.info("%s left room %s", player.name, room.id)
                self.engine.broadcast_room(room)
                return room

            self.engine.forfeit(room, player)
            if not any(p.connected for p in room.players):
                self._destroy(room)
            return room

    def _destroy(self, room: Room) -> None:
        self.timers.cancel(room)
        self.registry.delete(room.id)
        logger.info("Room %s destroyed", room.id)
