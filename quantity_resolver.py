"""
Stock quantity resolution from free-text availability descriptions.
"""

import re
from typing import List, Optional

from field_extractor import strip_html


YEAR_RANGE = range(2000, 2101)

_NUMBER = r"(\d{1,3}(?:,\d{3})+|\d+)"

# Tried in order; the first pattern that matches wins.
CONTEXT_PATTERNS = [
    re.compile(rf"\bthere\s+(?:are|is)\s+{_NUMBER}\b", re.IGNORECASE),
    re.compile(rf"\b{_NUMBER}\s+(?:items?\s+|pieces?\s+|pcs\.?\s+)?in\s+stock\b", re.IGNORECASE),
    re.compile(rf"\b{_NUMBER}\s+(?:items?\s+|pieces?\s+)?available\b", re.IGNORECASE),
    re.compile(rf"\b{_NUMBER}\s+(?:items?\s+|pieces?\s+)?left\b", re.IGNORECASE),
    re.compile(rf"\bin\s+stock\s*:\s*{_NUMBER}\b", re.IGNORECASE),
    re.compile(rf"\bstock\s*:\s*{_NUMBER}\b", re.IGNORECASE),
]

# Standalone integers only: no decimals, no digits glued to letters
STANDALONE_NUMBER = re.compile(rf"(?<![\w.,]){_NUMBER}(?![\w]|[.,]\d)")


def _to_int(token: str) -> int:
    return int(token.replace(",", ""))


def candidate_numbers(text: str) -> List[int]:
    """All standalone integers in ``text`` outside the calendar-year range"""
    numbers = (_to_int(token) for token in STANDALONE_NUMBER.findall(text))
    return [n for n in numbers if n not in YEAR_RANGE]


def resolve_quantity(text: Optional[str]) -> Optional[int]:
    """
    Extract a stock count such as ``"There are 145 in stock"`` -> 145.

    A number anchored to stock phrasing wins. Otherwise the text must contain
    exactly one standalone integer that is not a plausible year; zero or
    several candidates resolve to None rather than a guess.
    """
    if not text:
        return None
    plain = strip_html(text)

    for pattern in CONTEXT_PATTERNS:
        match = pattern.search(plain)
        if match:
            return _to_int(match.group(1))

    candidates = candidate_numbers(plain)
    if len(candidates) == 1:
        return candidates[0]
    return None
