"""
Wikitext value sanitizer.

Turns a raw infobox value such as

    {{nowrap|8,804,190}}<ref name="census">...</ref> (2020)

into display text ("8,804,190"). Each stage works on the output of the
previous one, so the order of the passes below matters: conversion and
nowrap templates must be unwrapped before the catch-all template removal,
and references must be gone before footnote markers are stripped.

Values that still look like markup after cleanup are rejected (None)
rather than shown half-parsed.
"""

from __future__ import annotations

import re
from typing import Optional

MAX_VALUE_LENGTH = 220

COMMENT_RE = re.compile(r"<!--.*?-->", re.S)
REF_SELF_CLOSING_RE = re.compile(r"<ref\b[^>]*/>", re.I)
REF_PAIRED_RE = re.compile(r"<ref\b[^>]*>.*?</ref>", re.I | re.S)
HTML_TAG_RE = re.compile(r"<[^>]+>")

FOOTNOTE_RE = re.compile(r"\[\s*(?:\d+|note\s*\d+|nb\s*\d+)\s*\]", re.I)
QUALIFIER_RE = re.compile(
    r"\(\s*(?:[12]\d{3}|census|approx|approximately|est\.?|estimate|estimated|as of|as at)[^)]*\)",
    re.I,
)

CONVERT_RE = re.compile(r"\{\{\s*(?:convert|cvt)\s*\|([^}]+)\}\}", re.I)
NOWRAP_RE = re.compile(r"\{\{\s*(?:nowrap|nobr)\s*\|(.*?)\}\}", re.I | re.S)

PIPED_LINK_RE = re.compile(r"\[\[([^\]|]+)\|([^\]]+)\]\]")
PLAIN_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
LABELLED_EXT_LINK_RE = re.compile(r"\[https?://[^\s\]]+\s+([^\]]+)\]")
BARE_EXT_LINK_RE = re.compile(r"\[https?://[^\s\]]+\]")

QUOTE_MARKUP_RE = re.compile(r"''+")
TEMPLATE_RE = re.compile(r"\{\{.*?\}\}", re.S)
WHITESPACE_RE = re.compile(r"\s+")

PUNCTUATION_ONLY_RE = re.compile(r"^[-–—,.;:]+$")
CITATION_MARKER_RE = re.compile(r"\b(?:citation needed|page needed)\b", re.I)
DIGITS_RE = re.compile(r"\d+")


def _convert_to_text(match: re.Match) -> str:
    args = [a.strip() for a in match.group(1).split("|")]
    args = [a for a in args if a]
    if len(args) < 2:
        return ""
    return f"{args[0]} {args[1]}"


def sanitize(raw: Optional[str]) -> Optional[str]:
    """Strip wikitext markup from a raw field value.

    Returns None for empty, punctuation-only, over-long or still-templated
    results, and for "citation needed" style markers.
    """
    if raw is None:
        return None
    s = str(raw)

    s = COMMENT_RE.sub("", s)
    s = REF_SELF_CLOSING_RE.sub("", s)
    s = REF_PAIRED_RE.sub("", s)
    s = HTML_TAG_RE.sub("", s)

    s = FOOTNOTE_RE.sub("", s)
    s = QUALIFIER_RE.sub("", s)

    s = CONVERT_RE.sub(_convert_to_text, s)
    s = NOWRAP_RE.sub(r"\1", s)

    s = PIPED_LINK_RE.sub(r"\2", s)
    s = PLAIN_LINK_RE.sub(r"\1", s)
    s = LABELLED_EXT_LINK_RE.sub(r"\1", s)
    s = BARE_EXT_LINK_RE.sub("", s)

    s = QUOTE_MARKUP_RE.sub("", s)
    s = TEMPLATE_RE.sub("", s)
    s = WHITESPACE_RE.sub(" ", s).strip()

    if not s:
        return None
    if PUNCTUATION_ONLY_RE.match(s):
        return None
    if "{{" in s or "}}" in s or "|" in s:
        return None
    if len(s) > MAX_VALUE_LENGTH:
        return None
    if CITATION_MARKER_RE.search(s):
        return None
    return s


def clean_numeric(raw: Optional[str]) -> Optional[str]:
    """Sanitize, then keep only the first integer, regrouped with commas.

    "1,234 residents (2020 est.)" -> "1,234". Text without any digits is
    returned sanitized but otherwise untouched.
    """
    cleaned = sanitize(raw)
    if cleaned is None:
        return None

    match = DIGITS_RE.search(cleaned.replace(",", ""))
    if match is None:
        return cleaned
    return f"{int(match.group(0)):,}"


# Name used by the map front-end
clean_wiki_numerical_value = clean_numeric
