class GameError(Exception):
    """Base exception for user-facing game errors."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

    def to_payload(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(GameError):
    """Malformed payload, wrong phase, or an actor not allowed to act."""


class NotFoundError(GameError):
    """Unknown room code."""


class StateConflict(GameError):
    """The action clashes with the room's current state."""


# Error codes
INVALID_PAYLOAD = "invalid_payload"
INVALID_NAME = "invalid_name"
ROOM_NOT_FOUND = "room_not_found"
NAME_TAKEN = "name_taken"
GAME_ALREADY_STARTED = "game_already_started"
ROOM_FULL = "room_full"
ALREADY_IN_ROOM = "already_in_room"
NOT_ENOUGH_PLAYERS = "not_enough_players"
ONLY_HOST = "only_host"
INTERNAL_ERROR = "internal_error"


def parse_index(raw, upper: int) -> int:
    """Coerce a client-supplied index into ``range(upper)``."""
    if isinstance(raw, str) and raw.strip().isdecimal():
        idx = int(raw.strip())
    elif isinstance(raw, int) and not isinstance(raw, bool):
        idx = raw
    else:
        raise ValidationError(INVALID_PAYLOAD, "Invalid index")
    if idx < 0 or idx >= upper:
        raise ValidationError(INVALID_PAYLOAD, "Index out of range")
    return idx
