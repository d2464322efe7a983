"""Parse catalog item names into artist, title and format.

Catalog names follow a loose convention::

    name    := artist SEP title [" [" detail "]"] [" (" format ")"]
    SEP     := " - " | ":"

Alternatively ``title " by " artist`` is recognised. When no separator is
present the first three words are taken as the artist. The format is the last
parenthesised group and is uppercased; a bracketed detail (e.g. ``[Digipak]``)
right before it is kept separately.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

LISTING_TITLE_MAX_LENGTH: Final[int] = 80
ELLIPSIS: Final[str] = "…"

_DASH_ARTIST = re.compile(r"^(.*?)\s+-\s+")
_COLON_ARTIST = re.compile(r"^(.*?):")
_BY_ARTIST = re.compile(r"\bby\s+(.*?)(?:\s+\(|\s*$)", re.IGNORECASE)
_DASH_TITLE = re.compile(r"^.*?\s+-\s+(.*?)(?:\s+[\[(]|\s*$)")
_COLON_TITLE = re.compile(r"^.*?:\s*(.*?)(?:\s+[\[(]|\s*$)")
_BY_TITLE = re.compile(r"^(.*?)\s+by\s+", re.IGNORECASE)
_FORMAT = re.compile(r"\(([^)]+)\)\s*$")
_DETAIL = re.compile(r"\[([^\]]+)\]\s*(?:\([^)]*\))?\s*$")
_TRAILING_GROUPS = re.compile(r"(?:\s*[\[(][^\])]*[\])])+\s*$")

# catalogue-internal edition markers that never belong in a listing title
_IGNORED_DETAILS: Final[frozenset[str]] = frozenset({"485"})
_TAX_REDUCED_FORMATS: Final[frozenset[str]] = frozenset({"BOOK", "BUCH", "TICKET"})


@dataclass(frozen=True, slots=True)
class ParsedTitle:
    artist: str
    title: str
    format: str = ""
    detail: str = ""

    @property
    def display_format(self) -> str:
        return " ".join(part for part in (self.detail, self.format) if part)

    def listing_title(self, max_length: int = LISTING_TITLE_MAX_LENGTH) -> str:
        head = f"{self.artist} - {self.title}" if self.artist and self.title else self.title
        head = head or self.artist
        if self.display_format:
            head = f"{head} ({self.display_format})"
        return shorten_by_word(head, max_length)


def parse_title(name: str) -> ParsedTitle:
    text = " ".join(name.split())
    if not text:
        return ParsedTitle(artist="", title="")

    format_match = _FORMAT.search(text)
    item_format = format_match.group(1).strip().upper() if format_match else ""
    detail_match = _DETAIL.search(text)
    detail = detail_match.group(1).strip() if detail_match else ""
    if detail in _IGNORED_DETAILS:
        detail = ""

    return ParsedTitle(
        artist=_parse_artist(text),
        title=_parse_title(text),
        format=item_format,
        detail=detail,
    )


def _parse_artist(text: str) -> str:
    for pattern in (_DASH_ARTIST, _COLON_ARTIST, _BY_ARTIST):
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return " ".join(_TRAILING_GROUPS.sub("", text).split()[:3])


def _parse_title(text: str) -> str:
    for pattern in (_DASH_TITLE, _COLON_TITLE, _BY_TITLE):
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return _TRAILING_GROUPS.sub("", text).strip()


def is_tax_reduced(parsed: ParsedTitle, group_id: str = "") -> bool:
    """Books and tickets carry the reduced VAT rate and no listing surcharge."""

    return parsed.format in _TAX_REDUCED_FORMATS or group_id.upper() in _TAX_REDUCED_FORMATS


def shorten_by_word(text: str, max_length: int, ellipsis: str = ELLIPSIS) -> str:
    """Cut ``text`` at a word boundary so that the result, ellipsis included, fits."""

    if len(text) <= max_length:
        return text
    budget = max_length - len(ellipsis)
    if budget <= 0:
        return ellipsis[:max_length]
    cut = text[:budget]
    if text[budget] != " " and " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:-") + ellipsis
