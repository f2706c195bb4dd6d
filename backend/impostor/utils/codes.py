from __future__ import annotations

import random
import string
from typing import Container

# No I/O: easy to misread on a shared screen.
ROOM_CODE_ALPHABET = "".join(c for c in string.ascii_uppercase if c not in "IO")
ROOM_CODE_LENGTH = 4


def normalize_room_code(raw: str) -> str:
    return (raw or "").strip().upper()


def generate_room_code(taken: Container[str] = (), rng=None) -> str:
    rng = rng or random
    code = "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
    while code in taken:
        code = "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
    return code
