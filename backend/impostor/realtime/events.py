# Inbound (client -> server)
CREATE_ROOM = "create_room"
JOIN_ROOM = "join_room"
LEAVE_ROOM = "leave_room"
START_GAME = "start_game"
RESTART_ROUND = "restart_round"
SUBMIT_CLUE = "submit_clue"
VOTE_PLAYER = "vote_player"
IMPOSTOR_GUESS = "impostor_guess"
STEAL_LIFE = "steal_life"
HEAD_TO_HEAD_ACTION = "head_to_head_action"

# Outbound (server -> client) emitted by the handlers themselves; the rest
# come from the game engine.
ROOM_JOINED = "room_joined"
ROOM_LEFT = "room_left"
ERROR = "error"
