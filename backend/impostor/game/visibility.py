"""Broadcast-safe projections of a room.

Everything that goes to the whole room passes through ``room_public_state``.
Secrets (role, target index, the spectator bundle) are only ever built by
``role_payload`` and ``spectator_payload`` and sent to a single player.
"""

from __future__ import annotations

from .models import REVEAL_PHASES, Player, Room


def player_view(player: Player, reveal: bool = False) -> dict:
    payload = {
        "id": player.id,
        "name": player.name,
        "isHost": player.is_host,
        "lives": player.lives,
        "isGhost": player.is_ghost,
        "hasBonusCard": player.has_bonus_card,
        "votesReceived": player.votes_received,
        "connected": player.connected,
    }
    # times_impostor moves when the impostor is drawn, so it is never public.
    if reveal:
        payload["role"] = player.role
    return payload


def players_view(room: Room, reveal: bool | None = None) -> list[dict]:
    if reveal is None:
        reveal = room.phase in REVEAL_PHASES
    return [player_view(p, reveal=reveal) for p in room.players]


def room_public_state(room: Room) -> dict:
    reveal = room.phase in REVEAL_PHASES

    payload = {
        "id": room.id,
        "phase": room.phase,
        "round": room.round,
        "players": players_view(room, reveal=reveal),
        "category": room.category,
        "words": list(room.words),
        "currentTurnIndex": room.current_turn_index,
        "clues": [dict(c) for c in room.clues],
        "timer": max(0, room.timer),
        "stealReason": room.steal_reason,
        "duelistIds": list(room.duelist_ids),
        "h2hButtonCount": len(room.h2h_buttons),
        "imposterId": room.imposter_id if reveal else None,
    }

    if room.phase == "COUNTDOWN":
        payload["category"] = None
        payload["words"] = []

    # Who voted whom stays hidden until the vote has resolved.
    if room.phase == "VOTE":
        payload["votes"] = {}
        payload["votedIds"] = sorted(room.votes.keys())
    else:
        payload["votes"] = dict(room.votes)
        payload["votedIds"] = sorted(room.votes.keys())

    return payload


def role_payload(room: Room, player: Player) -> dict:
    return {
        "role": player.role,
        "targetIndex": room.target_index if player.role == "INNOCENT" else None,
    }


def spectator_payload(room: Room) -> dict:
    return {
        "targetIndex": room.target_index,
        "imposterId": room.imposter_id,
        "words": list(room.words),
    }
