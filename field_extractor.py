"""
Ordered-fallback field extraction for heterogeneous upstream payloads.

A candidate path is either a dotted string (``"product.images.0.imageUrl"``)
or a tuple of segments. Integer segments index into lists, string segments
into dicts. ``extract`` walks the candidates in order and returns the first
one that resolves to a non-null value.
"""

import math
import re
from typing import Any, Iterable, Optional, Sequence, Tuple, Union


PathSegment = Union[str, int]
CandidatePath = Union[str, Sequence[PathSegment]]

_MISSING = object()
_TAG_RE = re.compile(r"<[^>]*?>")


def parse_path(path: CandidatePath) -> Tuple[PathSegment, ...]:
    if isinstance(path, str):
        return tuple(int(part) if part.isdigit() else part for part in path.split("."))
    return tuple(path)


def resolve(payload: Any, path: CandidatePath) -> Any:
    """Follow one path; returns the module sentinel when any segment is missing"""
    current = payload
    for segment in parse_path(path):
        if isinstance(segment, int):
            if not isinstance(current, (list, tuple)) or not -len(current) <= segment < len(current):
                return _MISSING
            current = current[segment]
        else:
            if not isinstance(current, dict) or segment not in current:
                return _MISSING
            current = current[segment]
    return current


def extract(payload: Any, candidate_paths: Iterable[CandidatePath], fallback: Any = None) -> Any:
    """Return the first non-null value among ``candidate_paths``, else ``fallback``"""
    for path in candidate_paths:
        value = resolve(payload, path)
        if value is not _MISSING and value is not None:
            return value
    return fallback


def strip_html(value: Any) -> Optional[str]:
    """Remove angle-bracket tags, e.g. ``"<b>145</b> in stock"`` -> ``"145 in stock"``"""
    if value is None:
        return None
    return _TAG_RE.sub("", str(value))


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", ""))
        except ValueError:
            return None
    return None


def as_count(value: Any) -> Optional[int]:
    """Non-negative integer view of a quantity field, else None"""
    number = as_number(value)
    if number is None or not math.isfinite(number) or number < 0 or number != int(number):
        return None
    return int(number)
