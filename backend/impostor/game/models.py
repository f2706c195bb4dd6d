from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


Phase = Literal[
    "LOBBY",
    "COUNTDOWN",
    "SETUP",
    "CLUE",
    "VOTE",
    "RESOLUTION",
    "STEAL_LIFE",
    "ROUND_END",
    "HEAD_TO_HEAD",
    "GAME_OVER",
]
Role = Literal["IMPOSTOR", "INNOCENT", "SPECTATOR"]

SKIP = "SKIP"

# Phases in which the impostor and every role are public.
REVEAL_PHASES = frozenset({"RESOLUTION", "STEAL_LIFE", "ROUND_END", "GAME_OVER", "HEAD_TO_HEAD"})
# Phases in which exactly one living player is the impostor.
ROUND_PHASES = frozenset({"CLUE", "VOTE", "RESOLUTION", "STEAL_LIFE"})


@dataclass
class Player:
    id: str
    name: str
    is_host: bool = False
    lives: int = 3
    role: Role | None = None
    is_ghost: bool = False
    has_bonus_card: bool = False
    times_impostor: int = 0
    votes_received: int = 0
    connected: bool = True

    @property
    def alive(self) -> bool:
        return self.lives > 0 and not self.is_ghost


@dataclass
class Room:
    id: str
    phase: Phase = "LOBBY"
    players: list[Player] = field(default_factory=list)
    category: str | None = None
    words: list[str] = field(default_factory=list)
    target_index: int | None = None
    imposter_id: str | None = None
    last_imposter_id: str | None = None
    current_turn_index: int = 0
    clues: list[dict] = field(default_factory=list)
    votes: dict[str, str] = field(default_factory=dict)
    timer: int = 0
    steal_reason: str | None = None
    h2h_buttons: list[int] = field(default_factory=list)
    duelist_ids: list[str] = field(default_factory=list)
    round: int = 0
    # Set while a display delay owns the room; actions are ignored meanwhile.
    pending: bool = False
    # Internal single-slot timer; never serialised.
    timer_handle: Any = None

    def get_player(self, player_id: str | None) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def living_players(self) -> list[Player]:
        return [p for p in self.players if p.alive]

    def host(self) -> Player | None:
        for p in self.players:
            if p.is_host:
                return p
        return None

    @property
    def target_word(self) -> str | None:
        if self.target_index is None or not (0 <= self.target_index < len(self.words)):
            return None
        return self.words[self.target_index]
