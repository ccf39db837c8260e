"""Keyword taxonomy used to tag prompts with a coloring page category."""
import re
from typing import Dict, List, Optional, Tuple

OTHER = "other"

# Order matters: on equal scores the earlier category wins.
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "animals": [
        "dog", "puppy", "cat", "kitten", "rabbit", "bunny", "hamster", "bird", "parrot",
        "owl", "horse", "pony", "cow", "pig", "sheep", "goat", "chicken", "duck", "llama",
        "lion", "tiger", "elephant", "giraffe", "zebra", "bear", "wolf", "fox", "deer",
        "squirrel", "monkey", "panda", "koala", "kangaroo", "dinosaur", "whale", "dolphin",
        "shark", "octopus", "turtle", "fish", "seahorse", "penguin", "crab", "butterfly",
        "bee", "ladybug", "dragonfly", "caterpillar", "snail", "frog", "animal",
    ],
    "fantasy": [
        "dragon", "unicorn", "fairy", "mermaid", "phoenix", "griffin", "pegasus", "elf",
        "gnome", "wizard", "witch", "princess", "prince", "knight", "castle", "magic",
        "magical", "enchanted", "mystical", "mythical", "potion", "wand", "fantasy",
    ],
    "nature": [
        "tree", "forest", "flower", "rose", "sunflower", "daisy", "tulip", "garden", "leaf",
        "mountain", "valley", "river", "lake", "ocean", "beach", "waterfall", "rainbow",
        "cloud", "landscape", "meadow", "mushroom", "cactus", "nature",
    ],
    "mandalas": [
        "mandala", "pattern", "geometric", "symmetrical", "symmetry", "kaleidoscope",
        "spiral", "ornamental", "zentangle", "tessellation",
    ],
    "vehicles": [
        "car", "truck", "bus", "motorcycle", "bicycle", "train", "airplane", "plane",
        "helicopter", "boat", "ship", "sailboat", "submarine", "tractor", "fire truck",
        "race car", "scooter", "vehicle",
    ],
    "food": [
        "cake", "cookie", "ice cream", "pizza", "burger", "sandwich", "apple", "banana",
        "strawberry", "cherry", "donut", "cupcake", "candy", "chocolate", "fruit",
        "vegetable", "bread", "pie", "food",
    ],
    "holidays": [
        "christmas", "halloween", "easter", "birthday", "valentine", "thanksgiving",
        "new year", "santa", "snowman", "reindeer", "pumpkin", "ornament", "present",
        "fireworks", "holiday",
    ],
    "sports": [
        "soccer", "football", "basketball", "baseball", "tennis", "golf", "swimming",
        "skating", "skiing", "surfing", "skateboard", "gymnastics", "sport",
    ],
    "space": [
        "space", "planet", "galaxy", "astronaut", "rocket", "spaceship", "alien", "ufo",
        "moon", "star", "comet", "satellite", "solar system",
    ],
}

THEMES: List[str] = list(CATEGORY_KEYWORDS)

STOPWORDS = {
    "a", "an", "the", "of", "in", "on", "at", "with", "and", "or", "for", "to", "from",
    "by", "is", "are", "my", "some", "very", "into", "its", "his", "her", "their",
}

_PATTERNS: Dict[str, List[Tuple[str, "re.Pattern[str]"]]] = {
    category: [
        (keyword, re.compile(r"\b" + re.escape(keyword) + r"(s|es)?\b"))
        for keyword in keywords
    ]
    for category, keywords in CATEGORY_KEYWORDS.items()
}


def _matches(text: str) -> Dict[str, List[Tuple[int, str]]]:
    found: Dict[str, List[Tuple[int, str]]] = {}
    for category, patterns in _PATTERNS.items():
        for keyword, pattern in patterns:
            match = pattern.search(text)
            if match:
                found.setdefault(category, []).append((match.start(), keyword))
    return found


def classify(prompt: str, theme: Optional[str] = None) -> str:
    """Returns the taxonomy category with the most keyword hits.

    >>> classify("a butterfly")
    'animals'
    >>> classify("a fairy castle")
    'fantasy'
    """
    text = prompt.lower()
    best, best_score = OTHER, 0
    for category, hits in _matches(text).items():
        if len(hits) > best_score:
            best, best_score = category, len(hits)
    if best == OTHER and theme:
        return theme
    return best


def extract_keywords(prompt: str) -> List[str]:
    """Taxonomy keywords found in the prompt, falling back to its content words."""
    text = prompt.lower()
    hits = sorted(hit for hits in _matches(text).values() for hit in hits)
    keywords = list(dict.fromkeys(keyword for _, keyword in hits))
    if keywords:
        return keywords
    words = re.findall(r"[a-z][a-z'-]*", text)
    return list(dict.fromkeys(w for w in words if w not in STOPWORDS and len(w) > 2))
