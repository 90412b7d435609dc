# carscout/infer.py
"""Heuristic field inference over free-text listing titles.

Everything here is a pure function of the title string so it can be tested
without touching the network. Matching is plain case-insensitive substring
search against small ordered vocabularies, which means:

* the first vocabulary entry found wins, so "2021 Toyota Tesla Model 3" is a
  Toyota because Toyota is listed before Tesla;
* substrings inside other words count ("Affordable" contains "ford").

Both are accepted limitations of the heuristic.
"""
import random
import re
from typing import Dict, Optional, Tuple

YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")

MAKES = (
    "Toyota", "Honda", "Ford", "Chevrolet", "BMW", "Mercedes", "Tesla", "Nissan",
    "Hyundai", "Jeep", "Mazda", "Subaru", "Volkswagen", "Audi", "Lexus",
)
BODY_TYPES = ("sedan", "suv", "truck", "coupe", "wagon", "van", "hatchback")

UNKNOWN = "Unknown"
DEFAULT_BODY_TYPE = "sedan"

# placeholder, not a real distance
DISTANCE_RANGE = (5, 34)


def infer_year(title: str) -> Optional[int]:
    m = YEAR_RE.search(title or "")
    return int(m.group(0)) if m else None


def infer_make(title: str) -> Tuple[str, str]:
    """Return ``(make, model)`` for a title.

    The model is the first whitespace token after the matched make, taken
    verbatim (punctuation included).
    """
    lowered = (title or "").lower()
    for make in MAKES:
        if make.lower() not in lowered:
            continue
        parts = re.split(re.escape(make), title, flags=re.IGNORECASE)
        tokens = parts[1].split() if len(parts) > 1 else []
        return make, tokens[0] if tokens else UNKNOWN
    return UNKNOWN, UNKNOWN


def infer_body_type(title: str) -> str:
    lowered = (title or "").lower()
    body = next((b for b in BODY_TYPES if b in lowered), DEFAULT_BODY_TYPE)
    return body.capitalize()


def infer_fuel_type(title: str) -> str:
    lowered = (title or "").lower()
    if "hybrid" in lowered:
        return "Hybrid"
    if "electric" in lowered:
        return "Electric"
    return "Gasoline"


def infer_fields(title: str) -> Dict[str, str]:
    make, model = infer_make(title)
    return {
        "make": make,
        "model": model,
        "body_type": infer_body_type(title),
        "fuel_type": infer_fuel_type(title),
    }


def synthetic_distance() -> int:
    return random.randint(*DISTANCE_RANGE)
