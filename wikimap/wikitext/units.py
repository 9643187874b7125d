"""Number, area, distance and elevation formatting for stat values."""

from __future__ import annotations

import re
from typing import Optional, Union

NUMBER_RE = re.compile(r"(?:[0-9]{1,3}(?:,[0-9]{3})+|[0-9]+)(?:\.[0-9]+)?")
NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")

DISTANCE_UNIT_RE = re.compile(r"\b(km|kilomet(?:er|re)s?|mi|miles?|m|met(?:er|re)s?)\b", re.I)
AREA_UNIT_RE = re.compile(
    r"(km\s*\^?2|km²|sq\s*km|square\s*kilomet(?:er|re)s?|mi\s*\^?2|mi²|sq\s*mi|square\s*miles?)",
    re.I,
)
ELEVATION_UNIT_RE = re.compile(r"\b(m|meters?|metres?|ft|feet)\b", re.I)

Number = Union[int, float, str]


def parse_number(text: Optional[Number]) -> Optional[float]:
    """First number in the text, thousands separators allowed."""
    if text is None:
        return None
    match = NUMBER_RE.search(str(text))
    if match is None:
        return None
    return float(match.group(0).replace(",", ""))


def _group(n: float) -> str:
    # at most two decimals, trailing zeros dropped
    return f"{n:,.2f}".rstrip("0").rstrip(".")


def format_number(value: Number) -> str:
    stripped = NON_NUMERIC_RE.sub("", str(value))
    try:
        return _group(float(stripped))
    except ValueError:
        return str(value)


def _leading_number(value: Number) -> Optional[float]:
    n = parse_number(value)
    if n is not None:
        return n
    try:
        return float(str(value))
    except ValueError:
        return None


def format_distance(value: Number) -> str:
    """'6,650 km' style; keeps a km/mi/m unit from the source, defaults to km."""
    s = str(value)
    n = _leading_number(s)
    if n is None:
        return s

    unit_match = DISTANCE_UNIT_RE.search(s)
    unit = unit_match.group(1).lower() if unit_match else "km"
    if unit.startswith("kilomet"):
        unit = "km"
    elif unit.startswith("mile"):
        unit = "mi"
    elif unit.startswith("met"):
        unit = "m"
    return f"{_group(n)} {unit}"


def format_area(value: Number) -> str:
    """'N km²' or 'N mi²'; unitless values are taken to be km²."""
    s = str(value)
    n = _leading_number(s)
    if n is None:
        return s

    unit_match = AREA_UNIT_RE.search(s)
    unit = "km²"
    if unit_match and "mi" in unit_match.group(1).lower():
        unit = "mi²"
    return f"{_group(n)} {unit}"


def format_elevation(value: Number) -> str:
    s = str(value).strip()
    if not (re.search(r"\d", s) and ELEVATION_UNIT_RE.search(s)):
        return s
    s = re.sub(r"\bmet(?:er|re)s?\b", "m", s, flags=re.I)
    return re.sub(r"\bfeet\b", "ft", s, flags=re.I)
