from __future__ import annotations

import json
import logging
import random
from pathlib import Path

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES: list[dict] = [
    {
        "name": "Animals",
        "words": [
            "Lion", "Penguin", "Giraffe", "Dolphin", "Eagle", "Kangaroo",
            "Octopus", "Elephant", "Wolf", "Turtle", "Bat", "Camel",
        ],
    },
    {
        "name": "Food",
        "words": [
            "Pizza", "Sushi", "Lasagna", "Taco", "Croissant", "Risotto",
            "Burger", "Pancake", "Curry", "Omelette", "Tiramisu", "Dumpling",
        ],
    },
    {
        "name": "Jobs",
        "words": [
            "Firefighter", "Dentist", "Pilot", "Chef", "Lawyer", "Farmer",
            "Astronaut", "Plumber", "Mechanic", "Surgeon", "Journalist", "Baker",
        ],
    },
    {
        "name": "Places",
        "words": [
            "Airport", "Beach", "Hospital", "Library", "Casino", "Museum",
            "Stadium", "Prison", "Cathedral", "Supermarket", "Zoo", "Cinema",
        ],
    },
    {
        "name": "Sports",
        "words": [
            "Football", "Tennis", "Golf", "Boxing", "Skiing", "Surfing",
            "Fencing", "Rugby", "Archery", "Cycling", "Volleyball", "Chess",
        ],
    },
    {
        "name": "Objects",
        "words": [
            "Umbrella", "Scissors", "Candle", "Ladder", "Mirror", "Backpack",
            "Hammer", "Clock", "Pillow", "Toothbrush", "Key", "Lamp",
        ],
    },
    {
        "name": "Music",
        "words": [
            "Guitar", "Violin", "Drums", "Piano", "Trumpet", "Harp",
            "Flute", "Saxophone", "Accordion", "Cello", "Banjo", "Tambourine",
        ],
    },
    {
        "name": "Transport",
        "words": [
            "Bicycle", "Submarine", "Helicopter", "Tram", "Sailboat", "Scooter",
            "Train", "Rocket", "Taxi", "Ferry", "Hot-air balloon", "Canoe",
        ],
    },
]


def _valid_category(item: object, min_words: int) -> bool:
    if not isinstance(item, dict):
        return False
    name = item.get("name")
    words = item.get("words")
    if not isinstance(name, str) or not name.strip():
        return False
    if not isinstance(words, list) or len(words) < min_words:
        return False
    return all(isinstance(w, str) and w.strip() for w in words)


def load_categories(path: str | None = None, min_words: int = 12) -> list[dict]:
    """Return the category list, read from ``path`` when given.

    Categories with fewer than ``min_words`` words are dropped. Falls back to
    the built-in list if the file yields nothing usable.
    """
    if not path:
        return [dict(c) for c in DEFAULT_CATEGORIES]

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    items = raw.get("categories", []) if isinstance(raw, dict) else raw
    categories = [
        {"name": c["name"].strip(), "words": [w.strip() for w in c["words"]]}
        for c in items
        if _valid_category(c, min_words)
    ]
    if not categories:
        logger.warning("No usable categories in %s, using built-in list", path)
        return [dict(c) for c in DEFAULT_CATEGORIES]

    logger.info("Loaded %d categories from %s", len(categories), path)
    return categories


def pick_category(categories: list[dict], count: int, rng=None) -> tuple[str, list[str]]:
    rng = rng or random
    category = rng.choice(categories)
    return category["name"], list(category["words"][:count])
