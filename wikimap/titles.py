"""
Article title candidates for a clicked map feature.

Map labels are bare names ("Springfield", "Amur", "Victoria"), while the
matching Wikipedia article usually carries a qualifier ("Springfield,
Illinois", "Amur River", "Lake Victoria"). Candidates are produced most
specific first; the resolver tries them in this exact order and stops at
the first verified article, so the ordering is the disambiguation priority.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from wikimap.models import Category
from wikimap.properties import TitleContext

PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*")

Strategy = Callable[[str, TitleContext], list[str]]


def _base_name(name: Optional[str]) -> str:
    base = PARENTHETICAL_RE.sub(" ", str(name or ""))
    return re.sub(r"\s+", " ", base).strip()


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.I) is not None


def _strip_word(text: str, word: str) -> str:
    stripped = re.sub(rf"\b{re.escape(word)}\b", "", text, flags=re.I)
    return re.sub(r"\s+", " ", stripped).strip()


# ── Category strategies ───────────────────────────────────────────────

def _city(base: str, ctx: TitleContext) -> list[str]:
    state, country = ctx.state_or_province, ctx.country
    out: list[str] = []
    if state and country:
        out += [f"{base}, {state}, {country}", f"{base}, {state}", f"{base}, {country}"]
    elif state:
        out.append(f"{base}, {state}")
    elif country:
        out.append(f"{base}, {country}")
    # "Name city" also stands in for the "City of Name" form
    out += [f"{base} city", base]
    return out


def _flip(base: str, word: str) -> list[str]:
    """'Strait of X' <-> 'X Strait', 'Lake X' -> 'X Lake'."""
    prefix = re.match(rf"^{re.escape(word)}\s+(?:of\s+)?(.+)$", base, re.I)
    if prefix:
        return [f"{prefix.group(1)} {word}"]
    suffix = re.match(rf"^(.+?)\s+{re.escape(word)}$", base, re.I)
    if suffix:
        return [f"{word} of {suffix.group(1)}"]
    rest = _strip_word(base, word)
    return [f"{rest} {word}"] if rest else []


def _water(word: str, aliases: tuple[str, ...] = ()) -> Strategy:
    """River/lake/sea/strait: same shape, different category word."""
    words = (word,) + aliases

    def build(base: str, ctx: TitleContext) -> list[str]:
        present = [w for w in words if _has_word(base, w)]
        named = base if present else f"{base} {word}"

        out: list[str] = []
        if ctx.country:
            out += [f"{named} ({ctx.country})", f"{named}, {ctx.country}"]
        out += [named, base]

        if not present:
            out.append(f"{word} of {base}")
            out += [f"{base} {alias}" for alias in aliases]
        for w in present:
            out += _flip(base, w)
            # Sea <-> Ocean substitution
            for other in words:
                if other != w:
                    out.append(re.sub(rf"\b{re.escape(w)}\b", other, base, flags=re.I))
        return out

    return build


def _country(base: str, ctx: TitleContext) -> list[str]:
    out: list[str] = []
    if ctx.country:
        out += [f"{base} ({ctx.country})", f"{base}, {ctx.country}"]
    out.append(base)

    word = Category.COUNTRY.type_word
    if not _has_word(base, word):
        out += [f"{base} {word}", f"{word} of {base}"]
    return out


def _default(base: str, ctx: TitleContext) -> list[str]:
    out: list[str] = []
    if ctx.country:
        out += [f"{base} ({ctx.country})", f"{base}, {ctx.country}"]
    out.append(base)
    return out


STRATEGIES: dict[Category, Strategy] = {
    Category.CITY: _city,
    Category.RIVER: _water("River"),
    Category.LAKE: _water("Lake"),
    Category.SEA: _water("Sea", aliases=("Ocean",)),
    Category.STRAIT: _water("Strait"),
    Category.COUNTRY: _country,
    Category.DEFAULT: _default,
}


def dedupe_titles(titles: list[str]) -> list[str]:
    """Case-insensitive dedup keeping the first spelling and position."""
    seen: set[str] = set()
    out: list[str] = []
    for title in titles:
        t = str(title or "").strip()
        key = t.lower()
        if not t or key in seen:
            continue
        seen.add(key)
        out.append(t)
    return out


def build_title_candidates(
    name: Optional[str],
    category: Category | str,
    context: Optional[TitleContext] = None,
) -> list[str]:
    """Ordered, deduplicated article titles to try for a feature."""
    base = _base_name(name)
    if not base:
        return []

    category = Category.parse(category)
    ctx = context or TitleContext()
    # A country's own ADMIN property is its name, not a qualifier
    if ctx.country and ctx.country.strip().lower() == base.lower():
        ctx = TitleContext(country=None, state_or_province=ctx.state_or_province)

    return dedupe_titles(STRATEGIES[category](base, ctx))
