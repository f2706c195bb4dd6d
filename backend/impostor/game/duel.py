from __future__ import annotations

import logging
from functools import partial

from .errors import parse_index
from .models import Player, Room
from .visibility import players_view

logger = logging.getLogger(__name__)

SAFE = 0
UNSAFE = 1


def shuffled_buttons(rng) -> list[int]:
    """One safe button and two unsafe ones, in a fresh random order."""
    buttons = [SAFE, UNSAFE, UNSAFE]
    rng.shuffle(buttons)
    return buttons


class DuelEngine:
    """Two-player sudden death, reached when only two players are alive."""

    def __init__(self, engine) -> None:
        self.engine = engine

    def current_duelist_id(self, room: Room) -> str | None:
        if not room.duelist_ids:
            return None
        return room.duelist_ids[room.current_turn_index % len(room.duelist_ids)]

    def start(self, room: Room) -> bool:
        e = self.engine
        e.timers.cancel(room)

        duelists = room.living_players()
        if len(duelists) != 2:
            logger.error("Room %s: duel needs 2 living players, found %d", room.id, len(duelists))
            return False

        room.phase = "HEAD_TO_HEAD"
        room.current_turn_index = 0
        room.pending = False
        room.timer = 0

        for p in duelists:
            if p.has_bonus_card:
                p.lives += 1
                p.has_bonus_card = False

        room.duelist_ids = [p.id for p in duelists]
        room.h2h_buttons = shuffled_buttons(e.rng)

        logger.info("Room %s: head-to-head %s vs %s", room.id, duelists[0].name, duelists[1].name)
        e.broadcast(room, "head_to_head_start", {
            "players": players_view(room, reveal=True),
            "duelistIds": list(room.duelist_ids),
            "turnPlayerId": self.current_duelist_id(room),
        })
        e.broadcast_room(room)
        return True

    def press(self, room: Room, player_id: str, button_index) -> bool:
        if room.phase != "HEAD_TO_HEAD" or room.pending:
            return False
        if player_id != self.current_duelist_id(room):
            return False

        button_index = parse_index(button_index, len(room.h2h_buttons))

        e = self.engine
        duelist = room.get_player(player_id)
        if duelist is None:
            logger.error("Room %s: duelist %s missing", room.id, player_id)
            return False

        is_safe = room.h2h_buttons[button_index] == SAFE
        if not is_safe:
            duelist.lives = max(0, duelist.lives - 1)

        e.broadcast(room, "head_to_head_result", {
            "playerId": duelist.id,
            "buttonIndex": button_index,
            "isSafe": is_safe,
            "lives": duelist.lives,
        })

        room.pending = True
        if duelist.lives <= 0:
            duelist.is_ghost = True
            winner = self._opponent(room, duelist)
            e.timers.after(
                room,
                e.config.DUEL_DEATH_DELAY_SEC,
                partial(self._finish, winner_id=winner.id if winner else None),
            )
            return True

        room.current_turn_index += 1
        room.h2h_buttons = shuffled_buttons(e.rng)
        e.timers.after(room, e.config.DUEL_TURN_DELAY_SEC, self._next_turn)
        return True

    def _next_turn(self, room: Room) -> None:
        room.pending = False
        self.engine.broadcast(room, "head_to_head_turn", {"turnPlayerId": self.current_duelist_id(room)})
        self.engine.broadcast_room(room)

    def _finish(self, room: Room, winner_id: str | None) -> None:
        self.engine.game_over(room, room.get_player(winner_id))

    def _opponent(self, room: Room, player: Player) -> Player | None:
        for pid in room.duelist_ids:
            if pid != player.id:
                return room.get_player(pid)
        return None

    def forfeit(self, room: Room, player: Player) -> None:
        opponent = self._opponent(room, player)
        winner = opponent if opponent is not None and opponent.alive else None
        self.engine.game_over(room, winner)
