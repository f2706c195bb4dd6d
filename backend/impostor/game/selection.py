from __future__ import annotations

import logging
import random

from .models import Player, Room
from .words import pick_category

logger = logging.getLogger(__name__)


def choose_impostor(living: list[Player], last_imposter_id: str | None, rng=None) -> Player:
    """Pick the round's impostor among ``living`` players.

    Only players who have been impostor the fewest times are eligible. If the
    draw lands on last round's impostor and someone else is eligible, the
    draw is repeated among the others.
    """
    if not living:
        raise ValueError("no living players to choose from")
    rng = rng or random

    min_times = min(p.times_impostor for p in living)
    candidates = [p for p in living if p.times_impostor == min_times]

    chosen = rng.choice(candidates)
    if last_imposter_id and chosen.id == last_imposter_id and len(candidates) > 1:
        others = [p for p in candidates if p.id != last_imposter_id]
        logger.debug("Avoiding impostor streak for %s", chosen.name)
        chosen = rng.choice(others)
    return chosen


def shuffle_turn_order(players: list[Player], rng=None) -> None:
    """Fisher-Yates shuffle, in place."""
    rng = rng or random
    for i in range(len(players) - 1, 0, -1):
        j = rng.randrange(i + 1)
        players[i], players[j] = players[j], players[i]


def roll_round(room: Room, categories: list[dict], words_per_round: int, rng=None) -> Player:
    """Draw category, words, target, impostor and turn order for a new round.

    Mutates ``room`` and the chosen player's counter, assigns every player's
    role and returns the impostor.
    """
    rng = rng or random

    room.category, room.words = pick_category(categories, words_per_round, rng=rng)
    room.target_index = rng.randrange(len(room.words))

    impostor = choose_impostor(room.living_players(), room.last_imposter_id, rng=rng)
    impostor.times_impostor += 1
    room.imposter_id = impostor.id
    room.last_imposter_id = impostor.id

    for p in room.players:
        if p.alive:
            p.role = "IMPOSTOR" if p.id == impostor.id else "INNOCENT"
        else:
            p.role = "SPECTATOR"
        p.votes_received = 0

    shuffle_turn_order(room.players, rng=rng)
    return impostor
