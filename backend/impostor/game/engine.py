from __future__ import annotations

import logging
import random
from collections import Counter
from functools import partial

from .duel import DuelEngine
from .errors import INVALID_PAYLOAD, ValidationError, parse_index
from .models import ROUND_PHASES, SKIP, Player, Room
from .selection import roll_round
from .timers import RoomTimers
from .visibility import players_view, role_payload, room_public_state, spectator_payload

logger = logging.getLogger(__name__)

INNOCENTS_WIN = "INNOCENTS_WIN"
IMPOSTOR_WIN = "IMPOSTOR_WIN"

# Round-end / steal reasons
WORD_GUESSED = "WORD_GUESSED"
INNOCENT_VOTED = "INNOCENT_VOTED"
NO_MAJORITY = "NO_MAJORITY"
IMPOSTOR_FAILED = "IMPOSTOR_FAILED"
STEAL_TIMEOUT = "STEAL_TIMEOUT"
IMPOSTOR_LEFT = "IMPOSTOR_LEFT"


class PhaseEngine:
    """Drives a room through its phases.

    Action methods return True when the action changed the room and False
    when it was ignored (wrong phase, wrong actor). Malformed input raises
    ``ValidationError``. Callers hold the service lock.
    """

    def __init__(self, transport, timers: RoomTimers, config, categories: list[dict], rng=None) -> None:
        self.transport = transport
        self.timers = timers
        self.config = config
        self.categories = categories
        self.rng = rng or random.Random()
        self.duel = DuelEngine(self)

    # ---- messaging ----

    def broadcast(self, room: Room, event: str, payload=None) -> None:
        self.transport.broadcast(room.id, event, payload)

    def send(self, player_id: str, event: str, payload=None) -> None:
        self.transport.send(player_id, event, payload)

    def broadcast_room(self, room: Room) -> None:
        self.broadcast(room, "room_update", room_public_state(room))

    def _tick(self, room: Room) -> None:
        self.broadcast(room, "timer_tick", max(0, room.timer))

    # ---- shared bookkeeping ----

    def lose_life(self, room: Room, player: Player) -> bool:
        """Take one life. Returns True if this eliminated the player."""
        player.lives = max(0, player.lives - 1)
        if player.lives > 0 or player.is_ghost:
            return False
        player.is_ghost = True
        logger.info("Room %s: %s eliminated", room.id, player.name)
        if player.connected:
            self.send(player.id, "spectator_update", spectator_payload(room))
        return True

    def current_player(self, room: Room) -> Player | None:
        if 0 <= room.current_turn_index < len(room.players):
            return room.players[room.current_turn_index]
        return None

    # ---- COUNTDOWN / SETUP ----

    def begin_round(self, room: Room) -> None:
        self.timers.cancel(room)
        room.round += 1
        room.pending = False
        room.clues = []
        room.votes = {}
        room.steal_reason = None
        room.h2h_buttons = []
        room.duelist_ids = []
        room.current_turn_index = -1

        impostor = roll_round(room, self.categories, self.config.WORDS_PER_ROUND, rng=self.rng)
        logger.info(
            "Room %s round %d: category=%s impostor=%s (times=%d)",
            room.id, room.round, room.category, impostor.name, impostor.times_impostor,
        )

        for p in room.players:
            if not p.alive and p.connected:
                self.send(p.id, "spectator_update", spectator_payload(room))

        room.phase = "COUNTDOWN"
        room.timer = self.config.COUNTDOWN_SEC
        self.broadcast_room(room)
        for p in room.players:
            self.send(p.id, "your_role", None)

        self.timers.countdown(room, self.config.COUNTDOWN_SEC, self._tick, self._enter_setup)

    def _enter_setup(self, room: Room) -> None:
        room.phase = "SETUP"
        room.current_turn_index = -1
        room.clues = []
        room.votes = {}
        room.timer = 0

        self.broadcast(room, "game_started", {
            "phase": "SETUP",
            "category": room.category,
            "words": list(room.words),
        })
        self.broadcast_room(room)
        for p in room.living_players():
            self.send(p.id, "your_role", role_payload(room, p))

        self.timers.after(room, self.config.SETUP_DELAY_SEC, self._enter_clue)

    # ---- CLUE ----

    def _enter_clue(self, room: Room) -> None:
        room.phase = "CLUE"
        room.current_turn_index = -1
        self._next_turn(room)

    def _next_turn(self, room: Room) -> None:
        while True:
            room.current_turn_index += 1
            if room.current_turn_index >= len(room.players):
                self._enter_vote(room)
                return
            player = room.players[room.current_turn_index]
            if player.alive:
                break
            logger.debug("Room %s: skipping %s (eliminated)", room.id, player.name)

        room.timer = self.config.CLUE_DURATION_SEC
        self.broadcast_room(room)
        self.timers.countdown(
            room,
            self.config.CLUE_DURATION_SEC,
            self._tick,
            partial(self._clue_timeout, player_id=player.id),
            expire_at=-self.config.CLUE_GRACE_SEC,
        )

    def _clue_timeout(self, room: Room, player_id: str) -> None:
        player = room.get_player(player_id)
        if player is None:
            logger.error("Room %s: clue turn owner %s missing", room.id, player_id)
            return
        logger.debug("Room %s: %s ran out of time", room.id, player.name)
        self._record_clue(room, player, self.config.PLACEHOLDER_CLUE)

    def submit_clue(self, room: Room, player_id: str, text) -> bool:
        if room.phase != "CLUE":
            return False
        current = self.current_player(room)
        if current is None or current.id != player_id:
            return False

        clue = str(text or "").strip()[: self.config.MAX_CLUE_LENGTH]
        if not clue:
            raise ValidationError(INVALID_PAYLOAD, "Clue cannot be empty")

        self._record_clue(room, current, clue)
        return True

    def _record_clue(self, room: Room, player: Player, text: str) -> None:
        self.timers.cancel(room)
        clue = {"playerId": player.id, "playerName": player.name, "text": text}
        room.clues.append(clue)
        self.broadcast(room, "clue_submitted", dict(clue))
        self._next_turn(room)

    # ---- VOTE ----

    def _enter_vote(self, room: Room) -> None:
        room.phase = "VOTE"
        room.votes = {}
        for p in room.players:
            p.votes_received = 0

        room.timer = self.config.VOTE_DURATION_SEC
        self.broadcast(room, "phase_change", {"phase": "VOTE", "clues": [dict(c) for c in room.clues]})
        self.broadcast_room(room)
        self.timers.countdown(room, self.config.VOTE_DURATION_SEC, self._tick, self._vote_timeout)

    def cast_vote(self, room: Room, voter_id: str, target_id) -> bool:
        if room.phase != "VOTE":
            return False
        voter = room.get_player(voter_id)
        if voter is None or not voter.alive:
            return False

        if target_id != SKIP:
            target = room.get_player(target_id)
            if target is None or not target.alive:
                raise ValidationError(INVALID_PAYLOAD, "Invalid vote target")

        room.votes[voter.id] = target_id
        self.broadcast_room(room)
        self._check_all_voted(room)
        return True

    def _check_all_voted(self, room: Room) -> None:
        living = room.living_players()
        if not all(p.id in room.votes for p in living):
            return
        final = self.config.VOTE_FINAL_WINDOW_SEC
        if room.timer > final:
            logger.debug("Room %s: everyone voted, jumping timer to %ds", room.id, final)
            room.timer = final
            self._tick(room)

    def _vote_timeout(self, room: Room) -> None:
        for p in room.living_players():
            room.votes.setdefault(p.id, SKIP)
        self._resolve_votes(room)

    def _resolve_votes(self, room: Room) -> None:
        living = room.living_players()
        living_ids = {p.id for p in living}

        counts = Counter(
            target for voter, target in room.votes.items()
            if voter in living_ids and target in living_ids
        )
        for p in room.players:
            p.votes_received = counts.get(p.id, 0)

        elected = None
        for target, count in counts.items():
            if count * 2 > len(living):
                elected = target
                break

        logger.info("Room %s: votes=%s elected=%s", room.id, dict(counts), elected)

        if elected is not None and elected == room.imposter_id:
            self._enter_resolution(room)
            return

        voted_name = None
        if elected is not None:
            voted = room.get_player(elected)
            voted_name = voted.name if voted else None
            self._enter_steal_life(room, INNOCENT_VOTED, voted_name=voted_name)
        else:
            self._enter_steal_life(room, NO_MAJORITY)

    # ---- RESOLUTION ----

    def _enter_resolution(self, room: Room) -> None:
        room.phase = "RESOLUTION"
        room.steal_reason = None
        room.pending = False
        room.timer = self.config.GUESS_DURATION_SEC

        self.broadcast(room, "impostor_caught", {"imposterId": room.imposter_id})
        self.broadcast(room, "phase_change", {"phase": "RESOLUTION", "imposterId": room.imposter_id})
        self.broadcast_room(room)
        self._start_guess_timer(room)

    def _start_guess_timer(self, room: Room) -> None:
        self.timers.countdown(room, self.config.GUESS_DURATION_SEC, self._tick, self._guess_timeout)

    def guess_word(self, room: Room, player_id: str, word_index) -> bool:
        if room.phase != "RESOLUTION" or room.pending:
            return False
        if player_id != room.imposter_id:
            return False

        idx = parse_index(word_index, len(room.words))
        impostor = room.get_player(room.imposter_id)
        if impostor is None:
            logger.error("Room %s: impostor %s missing", room.id, room.imposter_id)
            return False

        self.timers.cancel(room)
        target_word = room.target_word

        if idx == room.target_index:
            logger.info("Room %s: impostor guessed the word", room.id)
            room.steal_reason = WORD_GUESSED
            room.pending = True
            self.broadcast(room, "impostor_guess_result", {"success": True, "word": target_word})
            self.timers.after(
                room,
                self.config.GUESS_REVEAL_DELAY_SEC,
                partial(self._enter_steal_life, reason=WORD_GUESSED),
            )
            return True

        if impostor.has_bonus_card:
            impostor.has_bonus_card = False
            logger.info("Room %s: impostor used the bonus card", room.id)
            self.broadcast(room, "impostor_guess_result", {"success": False, "isBonus": True})
            self.broadcast(room, "bonus_card_used", {"imposterId": impostor.id})
            room.timer = self.config.GUESS_DURATION_SEC
            self.broadcast_room(room)
            self._start_guess_timer(room)
            return True

        self._fail_guess(room, impostor)
        return True

    def _guess_timeout(self, room: Room) -> None:
        impostor = room.get_player(room.imposter_id)
        if impostor is None:
            logger.error("Room %s: impostor %s missing", room.id, room.imposter_id)
            return
        self._fail_guess(room, impostor)

    def _fail_guess(self, room: Room, impostor: Player) -> None:
        target_word = room.target_word
        self.broadcast(room, "impostor_guess_result", {"success": False, "word": target_word})
        self.lose_life(room, impostor)
        room.pending = True
        self.timers.after(
            room,
            self.config.GUESS_REVEAL_DELAY_SEC,
            partial(self._end_round, result=INNOCENTS_WIN, reason=IMPOSTOR_FAILED, target_word=target_word),
        )

    # ---- STEAL_LIFE ----

    def _enter_steal_life(self, room: Room, reason: str, voted_name: str | None = None) -> None:
        room.phase = "STEAL_LIFE"
        room.steal_reason = reason
        room.pending = False
        room.timer = self.config.STEAL_DURATION_SEC

        self.broadcast(room, "phase_change", {"phase": "STEAL_LIFE", "reason": reason, "votedName": voted_name})
        self.broadcast_room(room)
        self.timers.countdown(room, self.config.STEAL_DURATION_SEC, self._tick, self._steal_forfeit)

    def steal_life(self, room: Room, player_id: str, target_id) -> bool:
        if room.phase != "STEAL_LIFE" or room.pending:
            return False
        if player_id != room.imposter_id:
            return False

        if not target_id:
            self._steal_forfeit(room)
            return True

        victim = room.get_player(target_id)
        if victim is None or not victim.alive or victim.id == room.imposter_id:
            raise ValidationError(INVALID_PAYLOAD, "Invalid steal target")

        impostor = room.get_player(room.imposter_id)
        if impostor is None:
            logger.error("Room %s: impostor %s missing", room.id, room.imposter_id)
            return False

        self.timers.cancel(room)
        self.lose_life(room, victim)
        self.broadcast(room, "life_stolen", {"victimId": victim.id, "victimName": victim.name})

        bonus_awarded = False
        if impostor.lives >= self.config.MAX_LIVES:
            impostor.has_bonus_card = True
            bonus_awarded = True
        else:
            impostor.lives += 1

        self._end_round(
            room,
            result=IMPOSTOR_WIN,
            reason=room.steal_reason or NO_MAJORITY,
            target_word=room.target_word,
            victim_id=victim.id,
            bonus_awarded=bonus_awarded,
        )
        return True

    def _steal_forfeit(self, room: Room) -> None:
        self.timers.cancel(room)
        impostor = room.get_player(room.imposter_id)
        if impostor is None:
            logger.error("Room %s: impostor %s missing", room.id, room.imposter_id)
        else:
            self.lose_life(room, impostor)
        self._end_round(room, result=INNOCENTS_WIN, reason=STEAL_TIMEOUT, target_word=room.target_word)

    # ---- ROUND_END ----

    def _end_round(
        self,
        room: Room,
        result: str,
        reason: str,
        target_word: str | None,
        victim_id: str | None = None,
        bonus_awarded: bool | None = None,
    ) -> None:
        self.timers.cancel(room)
        room.phase = "ROUND_END"
        room.pending = False
        room.steal_reason = None
        room.timer = 0

        payload = {
            "result": result,
            "reason": reason,
            "imposterId": room.imposter_id,
            "targetWord": target_word,
            "players": players_view(room, reveal=True),
        }
        if victim_id is not None:
            payload["victimId"] = victim_id
        if bonus_awarded is not None:
            payload["bonusAwarded"] = bonus_awarded

        logger.info("Room %s round %d over: %s (%s)", room.id, room.round, result, reason)
        self.broadcast(room, "round_end", payload)
        self.broadcast_room(room)
        self.timers.after(room, self.config.ROUND_END_DELAY_SEC, self._after_round_end)

    def _after_round_end(self, room: Room) -> None:
        living = room.living_players()
        if len(living) <= 1:
            self.game_over(room, living[0] if living else None)
        elif len(living) == 2:
            self.duel.start(room)
        else:
            self.begin_round(room)

    # ---- GAME_OVER / LOBBY ----

    def game_over(self, room: Room, winner: Player | None) -> None:
        self.timers.cancel(room)
        room.phase = "GAME_OVER"
        room.pending = False
        room.timer = 0

        logger.info("Room %s: game over, winner=%s", room.id, winner.name if winner else None)
        self.broadcast(room, "game_over", {
            "players": players_view(room, reveal=True),
            "winner": winner.name if winner else None,
            "winnerId": winner.id if winner else None,
        })
        self.broadcast_room(room)
        self.timers.after(room, self.config.GAME_OVER_RESET_SEC, self.reset_to_lobby)

    def reset_to_lobby(self, room: Room) -> None:
        self.timers.cancel(room)
        room.phase = "LOBBY"
        room.category = None
        room.words = []
        room.target_index = None
        room.imposter_id = None
        room.last_imposter_id = None
        room.current_turn_index = 0
        room.clues = []
        room.votes = {}
        room.timer = 0
        room.steal_reason = None
        room.h2h_buttons = []
        room.duelist_ids = []
        room.pending = False

        # Forfeited players are gone for good once the match is over.
        room.players = [p for p in room.players if p.connected]
        if room.players and room.host() is None:
            room.players[0].is_host = True

        for p in room.players:
            p.lives = self.config.MAX_LIVES
            p.role = None
            p.is_ghost = False
            p.has_bonus_card = False
            p.times_impostor = 0
            p.votes_received = 0

        logger.info("Room %s reset to lobby", room.id)
        self.broadcast_room(room)

    # ---- disconnects ----

    def forfeit(self, room: Room, player: Player) -> None:
        """A player left mid-match: they are eliminated on the spot."""
        was_alive = player.alive
        player.connected = False
        if not was_alive:
            self.broadcast_room(room)
            return

        player.lives = 0
        player.is_ghost = True
        logger.info("Room %s: %s left and forfeits", room.id, player.name)
        self.broadcast_room(room)

        if room.phase in ROUND_PHASES | {"COUNTDOWN", "SETUP"} and player.id == room.imposter_id:
            self._end_round(room, result=INNOCENTS_WIN, reason=IMPOSTOR_LEFT, target_word=room.target_word)
        elif room.pending and room.phase != "HEAD_TO_HEAD":
            # A reveal delay is already running; it resolves the round.
            return
        elif room.phase == "CLUE":
            current = self.current_player(room)
            if current is not None and current.id == player.id:
                self.timers.cancel(room)
                self._next_turn(room)
        elif room.phase == "VOTE":
            self._check_all_voted(room)
        elif room.phase == "HEAD_TO_HEAD" and player.id in room.duelist_ids:
            self.duel.forfeit(room, player)
