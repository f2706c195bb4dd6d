import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Empty means: pick per platform in create_app()
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Optional JSON file: {"categories": [{"name": ..., "words": [...]}, ...]}
    WORDS_FILE = os.environ.get("WORDS_FILE", "")

    # Room
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "3"))
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "12"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "16"))

    # Game
    MAX_LIVES = int(os.environ.get("MAX_LIVES", "3"))
    WORDS_PER_ROUND = int(os.environ.get("WORDS_PER_ROUND", "12"))
    PLACEHOLDER_CLUE = os.environ.get("PLACEHOLDER_CLUE", "(no clue)")
    MAX_CLUE_LENGTH = int(os.environ.get("MAX_CLUE_LENGTH", "32"))

    # Phase timers (seconds)
    COUNTDOWN_SEC = int(os.environ.get("COUNTDOWN_SEC", "3"))
    SETUP_DELAY_SEC = int(os.environ.get("SETUP_DELAY_SEC", "3"))
    CLUE_DURATION_SEC = int(os.environ.get("CLUE_DURATION_SEC", "20"))
    CLUE_GRACE_SEC = int(os.environ.get("CLUE_GRACE_SEC", "2"))
    VOTE_DURATION_SEC = int(os.environ.get("VOTE_DURATION_SEC", "30"))
    VOTE_FINAL_WINDOW_SEC = int(os.environ.get("VOTE_FINAL_WINDOW_SEC", "5"))
    GUESS_DURATION_SEC = int(os.environ.get("GUESS_DURATION_SEC", "30"))
    GUESS_REVEAL_DELAY_SEC = int(os.environ.get("GUESS_REVEAL_DELAY_SEC", "3"))
    STEAL_DURATION_SEC = int(os.environ.get("STEAL_DURATION_SEC", "10"))
    ROUND_END_DELAY_SEC = int(os.environ.get("ROUND_END_DELAY_SEC", "5"))
    DUEL_TURN_DELAY_SEC = int(os.environ.get("DUEL_TURN_DELAY_SEC", "2"))
    DUEL_DEATH_DELAY_SEC = int(os.environ.get("DUEL_DEATH_DELAY_SEC", "2"))
    GAME_OVER_RESET_SEC = int(os.environ.get("GAME_OVER_RESET_SEC", "10"))
