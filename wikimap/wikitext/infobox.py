"""
Infobox extraction from article wikitext.

The infobox is located by brace counting rather than a regex because its
values routinely contain nested templates ({{convert|...}}, {{nowrap|...}},
{{flagicon|...}}) that a non-recursive pattern would cut short.
"""

from __future__ import annotations

import re
from typing import Optional

INFOBOX_OPEN_RE = re.compile(r"\{\{infobox", re.I)
PARAM_LINE_RE = re.compile(r"^\|\s*([^=|]+?)\s*=\s*(.*)$")
PARAM_ANYWHERE_RE = re.compile(r"\|\s*([^=|]+?)\s*=\s*([^|\n]+)")
INFOBOX_TYPE_RE = re.compile(r"\s*([^|\n]*)")


def extract_infobox(markup: Optional[str]) -> Optional[str]:
    """Body of the first {{Infobox ...}} template, or None.

    Depth starts at 2 for the opening braces and moves in steps of 2 on
    every '{{' / '}}'. The body runs from the end of the literal
    '{{infobox' to just before the matching '}}'. Truncated markup
    (depth never returns to 0) yields None.
    """
    if not markup:
        return None
    s = str(markup)
    match = INFOBOX_OPEN_RE.search(s)
    if match is None:
        return None

    depth = 2
    pos = match.start() + 2
    end = len(s)
    while pos < end:
        pair = s[pos:pos + 2]
        if pair == "{{":
            depth += 2
            pos += 2
        elif pair == "}}":
            depth -= 2
            if depth == 0:
                return s[match.end():pos].strip()
            pos += 2
        else:
            pos += 1
    return None


def extract_field_map(body: Optional[str]) -> dict[str, str]:
    """Flat lowercase key -> raw value mapping of an infobox body.

    Pass 1 scans line by line; a line that does not start a new parameter
    (and is not '}}') continues the previous value. Pass 2 sweeps the whole
    text for '| key = value' pairs the line scan could not see, e.g. several
    parameters on one line. Neither pass overwrites an existing key.
    """
    out: dict[str, str] = {}
    if not body:
        return out

    current: Optional[str] = None
    for line in str(body).split("\n"):
        trimmed = line.strip()
        match = PARAM_LINE_RE.match(trimmed)
        if match:
            key = match.group(1).strip().lower()
            if not key or key in out:
                current = None
                continue
            out[key] = match.group(2).strip()
            current = key
        elif current and trimmed and not trimmed.startswith("|") and not trimmed.startswith("}}"):
            out[current] = f"{out[current]} {trimmed}" if out[current] else trimmed

    for match in PARAM_ANYWHERE_RE.finditer(str(body)):
        key = match.group(1).strip().lower()
        value = match.group(2).strip()
        if key and value and key not in out:
            out[key] = value

    return out


def extract_param(body: Optional[str], key: Optional[str]) -> Optional[str]:
    """Single-parameter lookup straight against the infobox text."""
    if not body or not key:
        return None
    pattern = re.compile(r"\|\s*" + re.escape(key) + r"\s*=\s*([^|\n\r]+)", re.I)
    match = pattern.search(body)
    return match.group(1).strip() if match else None


def infobox_type(body: Optional[str]) -> Optional[str]:
    """Template type from the first line of the body ('settlement', 'river', ...)."""
    if not body:
        return None
    kind = INFOBOX_TYPE_RE.match(body).group(1).strip().lower()
    return kind or None
