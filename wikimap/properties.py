"""
Helpers for reading GeoJSON feature properties.

Natural Earth and OSM-derived layers spell the same attribute several ways
(ADMIN / admin / sovereignt, ADM1_NAME / STATE / province ...), so lookups
probe an ordered list of names and take the first non-blank value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

STATE_KEYS = (
    "ADM1_NAME", "adm1_name", "admin_name", "STATE", "state",
    "PROVINCE", "province", "REGION", "region",
)
COUNTRY_KEYS = ("COUNTRY", "country", "ADMIN", "admin", "sovereignt", "SOVEREIGNT")
NAME_KEYS = ("name_en", "NAME_EN", "name", "NAME", "nameascii", "NAMEASCII")


@dataclass(frozen=True)
class TitleContext:
    country: Optional[str] = None
    state_or_province: Optional[str] = None


def find_first_prop(props: Optional[dict], keys: Iterable[str]) -> Optional[Any]:
    """Value of the first key present with a non-blank value."""
    if not props:
        return None
    for key in keys:
        value = props.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _as_text(value: Any) -> Optional[str]:
    return str(value).strip() if value is not None else None


def context_from_properties(props: Optional[dict]) -> TitleContext:
    return TitleContext(
        country=_as_text(find_first_prop(props, COUNTRY_KEYS)),
        state_or_province=_as_text(find_first_prop(props, STATE_KEYS)),
    )


def display_name(props: Optional[dict]) -> Optional[str]:
    return _as_text(find_first_prop(props, NAME_KEYS))
