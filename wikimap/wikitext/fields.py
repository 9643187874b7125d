"""
Statistic resolution: infobox parameters -> display-ready Stat cards.

Infobox templates name the same quantity differently depending on the
article type (population_total on settlements, population_estimate on
countries, length on rivers ...). Each StatSpec lists its candidate
parameter names in priority order; the registry order decides which stats
survive when the per-entity limit is reached.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from wikimap.models import Category, Stat
from wikimap.properties import find_first_prop
from wikimap.wikitext.infobox import extract_field_map, extract_infobox, extract_param
from wikimap.wikitext.sanitize import clean_numeric, sanitize
from wikimap.wikitext.units import (
    format_area,
    format_distance,
    format_elevation,
    format_number,
    parse_number,
)

DEFAULT_MAX_STATS = 12
FALLBACK_MAX_STATS = 3

_LABEL_OVERRIDES = {
    "gdp": "GDP",
    "leader_name": "Leader",
    "max_depth": "Max depth",
    "basin_countries": "Basin countries",
    "driving_side": "Driving side",
}

# Substring -> icon, first match wins
_ICON_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("population",), "👥"),
    (("gdp",), "💰"),
    (("capital",), "🏛️"),
    (("currency",), "💱"),
    (("language",), "🗣️"),
    (("timezone", "utc"), "🕒"),
    (("founded", "established", "inception"), "📅"),
    (("area",), "📐"),
    (("elevation", "height"), "⛰️"),
    (("depth",), "⚓"),
    (("density",), "🧮"),
    (("discharge", "flow"), "💧"),
    (("basin",), "🗺️"),
    (("source", "mouth"), "🌊"),
    (("volume",), "🧊"),
    (("salinity",), "🧂"),
    (("driving",), "🚗"),
    (("leader",), "👤"),
    (("length",), "📏"),
)
DEFAULT_ICON = "📍"


def label_for_key(stat_id: str) -> str:
    key = str(stat_id or "").lower()
    if key in _LABEL_OVERRIDES:
        return _LABEL_OVERRIDES[key]
    return " ".join(w[:1].upper() + w[1:] for w in key.replace("_", " ").split())


def icon_for_key(stat_id: str) -> str:
    key = str(stat_id or "").lower()
    for needles, icon in _ICON_RULES:
        if any(n in key for n in needles):
            return icon
    if key == "coordinates" or "lat" in key or "lon" in key:
        return "🗺️"
    return DEFAULT_ICON


@dataclass(frozen=True)
class StatSpec:
    id: str
    keys: tuple[str, ...]
    label: str
    icon: str


def _spec(stat_id: str, keys: Iterable[str]) -> StatSpec:
    return StatSpec(id=stat_id, keys=tuple(keys), label=label_for_key(stat_id), icon=icon_for_key(stat_id))


STAT_REGISTRY: tuple[StatSpec, ...] = (
    _spec("population", ["population", "population_total", "population_estimate", "population_est",
                         "population_urban", "population_metro"]),
    _spec("area", ["area", "area_km2", "area_total", "area_total_km2", "area_total_km", "surface_area"]),
    _spec("elevation", ["elevation", "elevation_m", "elevation_ft", "elevation_max_m", "elevation_max"]),
    _spec("founded", ["founded", "established", "established_date", "established_title", "inception", "formed"]),
    _spec("density", ["population_density_km2", "population_density", "density_km2", "density"]),
    _spec("timezone", ["timezone", "time_zone", "utc_offset", "utc_offset1"]),
    _spec("capital", ["capital", "capital_city"]),
    _spec("gdp", ["gdp", "gdp_nominal", "gdp_nominal_total", "gdp_ppp", "gdp_ppp_total"]),
    _spec("currency", ["currency", "currency_code"]),
    _spec("languages", ["official_languages", "official_language", "languages", "language"]),
    _spec("leader_name", ["leader_name", "leader", "leader_title", "leader_name1", "president",
                          "prime_minister", "governor"]),
    _spec("driving_side", ["driving_side"]),
    _spec("length", ["length", "length_km"]),
    _spec("discharge", ["discharge", "discharge_avg", "discharge1_avg", "avg_discharge"]),
    _spec("max_depth", ["max_depth", "max_depth_m", "depth_max", "depth_max_m"]),
    _spec("basin_countries", ["basin_countries", "basin_countries1", "basin_countries2"]),
    _spec("source", ["source", "source1_location", "source_location", "source1"]),
    _spec("mouth", ["mouth", "mouth_location", "mouth1_location"]),
    _spec("volume", ["volume", "volume_km3"]),
    _spec("salinity", ["salinity"]),
)


def _format_population(cleaned: str) -> str:
    numeric = clean_numeric(cleaned)
    return format_number(numeric) if numeric else cleaned


_VALUE_FORMATTERS: dict[str, Callable[[str], str]] = {
    "population": _format_population,
    "area": format_area,
    "length": format_distance,
}


def _first_raw_value(body: str, params: dict[str, str], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        kk = key.lower()
        value = params.get(kk)
        if value is not None and value.strip():
            return value
        value = extract_param(body, key)
        if value is not None and value.strip():
            return value
    return None


def resolve_stats(
    body: Optional[str],
    registry: Iterable[StatSpec] = STAT_REGISTRY,
    max_stats: int = DEFAULT_MAX_STATS,
) -> list[Stat]:
    """Resolve registry stats from an infobox body, at most max_stats of them."""
    stats: list[Stat] = []
    if not body or max_stats <= 0:
        return stats

    params = extract_field_map(body)
    used: set[str] = set()

    for spec in registry:
        if len(stats) >= max_stats:
            break
        if spec.id in used:
            continue

        raw = _first_raw_value(body, params, spec.keys)
        cleaned = sanitize(raw)
        if cleaned is None:
            continue

        formatter = _VALUE_FORMATTERS.get(spec.id)
        value = (formatter(cleaned) if formatter else cleaned).strip()
        if not value:
            continue

        stats.append(Stat(icon=spec.icon, label=spec.label, value=value))
        used.add(spec.id)

    return stats


def extract_stats(markup: Optional[str], max_stats: int = DEFAULT_MAX_STATS) -> list[Stat]:
    """Infobox extraction followed by stat resolution; no infobox means no stats."""
    body = extract_infobox(markup)
    if body is None:
        return []
    return resolve_stats(body, STAT_REGISTRY, max_stats)


# ── Fallback: stats straight from feature properties ──────────────────

def _format_population_prop(value) -> str:
    n = parse_number(value)
    return format_number(n) if n is not None else str(value).strip()


_FALLBACK_PROBES: tuple[tuple[str, tuple[str, ...], Callable], ...] = (
    ("population", ("POP_EST", "POP_MAX", "pop_est", "population", "population_total", "POPULATION"),
     _format_population_prop),
    ("area", ("AREA_KM2", "AREA", "area", "AREA_SQKM", "area_km2"), format_area),
    ("elevation", ("elevation", "ELEVATION", "elev_m", "ELEV_M", "elevation_m", "ELEVFT", "elevation_ft"),
     format_elevation),
    ("founded", ("founded", "inception", "established", "established_year", "formation", "start_date",
                 "INCORPORAT"), lambda v: str(v).strip()),
    ("length", ("length_km", "LENGTH_KM", "LENGTH", "length", "len_km", "LEN_KM"), format_distance),
)

TYPE_LABEL = label_for_key("type")


def get_fallback_stats(
    properties: Optional[dict],
    category: Category,
    max_stats: int = FALLBACK_MAX_STATS,
) -> list[Stat]:
    """Stats read directly from a feature's properties when no article matched."""
    stats: list[Stat] = []

    def push(stat_id: str, value) -> None:
        if len(stats) >= max_stats:
            return
        text = str(value).strip() if value is not None else ""
        if text:
            stats.append(Stat(icon=icon_for_key(stat_id), label=label_for_key(stat_id), value=text))

    for stat_id, keys, fmt in _FALLBACK_PROBES:
        value = find_first_prop(properties, keys)
        if value is not None:
            push(stat_id, fmt(value))

    category = Category.parse(category)
    if category.type_word:
        push("type", category.type_word)

    return stats


def is_informative(stats: list[Stat]) -> bool:
    """A lone Type card says nothing the map does not already show."""
    if not stats:
        return False
    return not (len(stats) == 1 and stats[0].label == TYPE_LABEL)
