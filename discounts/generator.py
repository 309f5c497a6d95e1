import random
import re
import string
import time
from typing import Callable, Optional

from discounts.errors import InvalidCategory, InvalidCodeFormat

CODE_PATTERN = re.compile(r"^[A-Z0-9]{6,12}$")
MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 12
RANDOM_CODE_LENGTH = 8
MAX_RETRIES = 10
ALPHABET = string.ascii_uppercase + string.digits

PREFIXES = {
    "general": ["SAVE", "GET", "DEAL", "PROMO", "OFFER"],
    "seasonal": ["SPRING", "SUMMER", "AUTUMN", "WINTER"],
    "target": ["STUDENT", "ARTIST", "JUNIOR", "SENIOR", "FREELANCE"],
    "social": ["YOUTUBE", "INSTAGRAM", "LINKEDIN", "TWITTER", "TIKTOK"],
    "events": ["WORKSHOP", "WEBINAR", "CONFERENCE", "MEETUP", "LIVE"],
    "special": ["FLASH", "WEEKEND", "MIDNIGHT", "EARLY", "LAST"],
    "welcome": ["WELCOME", "HELLO", "FIRST", "NEW", "START"],
}

SUFFIXES = ["10", "2025", "NOW", "VFX", "GO"]

CATEGORY_NAMES = {
    "general": "General Offer",
    "seasonal": "Seasonal Offer",
    "target": "Targeted Offer",
    "social": "Social Media",
    "events": "Events",
    "special": "Special Offer",
    "welcome": "Welcome",
}


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def validate_custom_code(code: str) -> str:
    normalized = normalize_code(code)
    if not CODE_PATTERN.match(normalized):
        raise InvalidCodeFormat(normalized)
    return normalized


def check_category(category: Optional[str]) -> None:
    if category is not None and category not in PREFIXES:
        raise InvalidCategory(category, f"Unknown discount code category: {category}")


def describe(category: Optional[str], kind: str, value: int) -> str:
    label = CATEGORY_NAMES.get(category, "Automatic Code")
    if kind == "fixed":
        return f"{label} - {value / 100:.2f} off"
    return f"{label} - {value}% off"


class CodeGenerator:
    """
    Draws candidate codes and keeps drawing until ``is_taken`` says no.

    Thematic codes are a category prefix plus a pooled suffix, random codes
    are eight characters. After MAX_RETRIES collisions the low digits of the
    clock are appended instead, counting up until the candidate is free.
    """

    def __init__(self, rng: Optional[random.Random] = None, clock: Callable[[], float] = time.time):
        self.rng = rng or random.SystemRandom()
        self.clock = clock

    def random_code(self, length: int = RANDOM_CODE_LENGTH) -> str:
        return "".join(self.rng.choice(ALPHABET) for _ in range(length))

    def thematic_code(self, category: str) -> str:
        check_category(category)
        prefix = self.rng.choice(PREFIXES[category])
        # every prefix has at least one suffix that lands in 6..12
        fitting = [s for s in SUFFIXES if MIN_CODE_LENGTH <= len(prefix) + len(s) <= MAX_CODE_LENGTH]
        return prefix + self.rng.choice(fitting)

    def draw(self, category: Optional[str] = None) -> str:
        return self.thematic_code(category) if category else self.random_code()

    def unique_code(self, is_taken: Callable[[str], bool], category: Optional[str] = None) -> str:
        check_category(category)
        for _ in range(MAX_RETRIES):
            candidate = self.draw(category)
            if not is_taken(candidate):
                return candidate
        return self._timestamped(is_taken, category)

    def _timestamped(self, is_taken, category):
        if category:
            stem = self.rng.choice(PREFIXES[category])[:MAX_CODE_LENGTH - 4]
        else:
            stem = self.random_code()
        counter = int(self.clock() * 1000) % 10000
        for _ in range(10000):
            candidate = f"{stem}{counter:04d}"
            if not is_taken(candidate):
                return candidate
            counter = (counter + 1) % 10000
        # all 10k suffixes of this stem are taken; a fresh random stem always has room
        return self._timestamped(is_taken, None)
