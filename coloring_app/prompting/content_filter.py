"""Family-friendly content filter applied before any model provider call."""
import re
import logging
from typing import List

from coloring_app.exceptions import ContentPolicyViolationException

log = logging.getLogger(__name__)

BLOCKED_KEYWORDS = [
    # violence and weapons
    "violence", "violent", "blood", "bloody", "weapon", "gun", "knife", "death", "dead",
    "kill", "murder", "bomb", "explosive", "assault", "shoot", "stab", "gore",
    # adult content
    "sexual", "sexy", "nude", "naked", "explicit", "porn", "erotic", "seductive", "inappropriate",
    # substances
    "drug", "alcohol", "beer", "wine", "cigarette", "smoking", "marijuana", "cocaine", "heroin",
    # dark and scary content
    "scary", "horror", "demon", "devil", "evil", "satanic", "occult", "terror",
    # self harm and hate
    "suicide", "self-harm", "racist", "hate",
]

BLOCKED_PHRASES = [
    "dark magic",
    "adult content",
    "adult material",
    "adult themes",
    "adult entertainment",
]

# whole words, singular or simple plural
_KEYWORD_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in BLOCKED_KEYWORDS) + r")(s|es)?\b",
    re.IGNORECASE,
)


def find_blocked_terms(text: str) -> List[str]:
    """Returns the blocked keywords and phrases found in text, in order of appearance."""
    lowered = " ".join(text.lower().split())
    found = [m.group(1) for m in _KEYWORD_PATTERN.finditer(lowered)]
    found.extend(phrase for phrase in BLOCKED_PHRASES if phrase in lowered)
    # keep first occurrence only
    return list(dict.fromkeys(found))


def is_family_friendly(text: str) -> bool:
    return not find_blocked_terms(text)


def ensure_family_friendly(text: str) -> str:
    """Raises ContentPolicyViolationException when text contains blocked terms."""
    blocked = find_blocked_terms(text)
    if blocked:
        log.warning("Blocked prompt with terms: %s", ", ".join(blocked))
        raise ContentPolicyViolationException(
            f"Content must be family-friendly. Please remove: {', '.join(blocked)}"
        )
    return text
