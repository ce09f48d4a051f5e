# planvision/vision/labels.py
"""
Room label cleanup.

Room labels stay free text, the vision model may name rooms however the
drawing does. We only tidy whitespace and map a few frequent synonyms so the
same room type reads the same across strategies.
"""

# Common synonyms -> display labels
LABEL_ALIASES = {
    "lounge": "Living Room",
    "living": "Living Room",
    "livingroom": "Living Room",
    "sitting room": "Living Room",
    "bed room": "Bedroom",
    "master bedroom": "Master Bedroom",
    "bath": "Bathroom",
    "wc": "Toilet",
    "corridor": "Hallway",
    "hall": "Hallway",
    "entry": "Entrance",
    "foyer": "Entrance",
    "study": "Office",
    "wardrobe": "Closet",
    "walk in closet": "Closet",
    "terrace": "Balcony",
}


def label_key(label: str) -> str:
    """Lowercase, single-spaced form used for alias lookups."""
    key = (label or "").strip().lower()
    key = key.replace("_", " ").replace("-", " ")
    return " ".join(key.split())


def clean_room_label(label, index: int) -> str:
    """Display label for the room at `index`; blank labels become 'Room <n>'."""
    text = " ".join(str(label or "").split())
    if not text:
        return f"Room {index + 1}"
    return LABEL_ALIASES.get(label_key(text), text)
