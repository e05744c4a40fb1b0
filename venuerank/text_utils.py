from __future__ import annotations

import re
import urllib.parse
from typing import Any, Dict, Optional

from unidecode import unidecode

from .exceptions import NUMERIC_ERRORS

__all__ = [
    "strip_accents",
    "build_url",
    "clean_text_for_comparison",
    "normalize_text",
    "similarity",
    "strip_org_prefixes",
    "sanitize_author_name",
    "strip_dblp_disambiguator",
    "contains_keyword",
    "page_count",
    "parse_year",
]

# Abbreviations seen in venue strings, expanded before comparison. Dotted forms
# come first so "conf." is consumed before the bare "conf" rule runs.
_ABBREVIATIONS = (
    ("int'l", "international"),
    ("intl", "international"),
    ("conf.", "conference"),
    ("conf", "conference"),
    ("proc.", "proceedings"),
    ("proc", "proceedings"),
    ("symp.", "symposium"),
    ("symp", "symposium"),
    ("j.", "journal"),
    ("jour", "journal"),
    ("trans.", "transactions"),
    ("trans", "transactions"),
    ("annu.", "annual"),
    ("comput.", "computing"),
    ("commun.", "communications"),
    ("syst.", "systems"),
    ("sci.", "science"),
    ("tech.", "technical"),
    ("technol", "technology"),
    ("engin.", "engineering"),
    ("res.", "research"),
    ("adv.", "advances"),
    ("appl.", "applications"),
    ("lectures notes", "lecture notes"),
    ("lect notes", "lecture notes"),
    ("lncs", "lecture notes in computer science"),
)


def _abbreviation_pattern(abbr: str) -> re.Pattern:
    tail = r"\b" if abbr[-1].isalnum() else ""
    return re.compile(r"\b" + re.escape(abbr) + tail)


_ABBREVIATION_PATTERNS = tuple((_abbreviation_pattern(a), full) for a, full in _ABBREVIATIONS)

_PUNCTUATION_RE = re.compile(r"[.,/#!$%^;*:{}=_`~?\"“”()\[\]]")
_LEADING_YEAR_RE = re.compile(r"^(?:\d{4}|\d{1,2}(?:st|nd|rd|th))\s+")
_TRAILING_YEAR_RE = re.compile(r"\s*(?:,\s*\d{4}|\(\s*\d{4}\s*\))\s*$")

# Organizational tokens removed from the start of conference titles; longer
# compound forms come before their components
ORG_PREFIXES = (
    "acm/ieee", "ieee/acm", "acm-ieee", "ieee-acm",
    "acm sigplan", "acm sigops", "acm sigbed", "acm sigcomm", "acm sigmod", "acm sigarch", "acm sigsac",
    "acm", "ieee", "ifip", "usenix", "eurographics", "springer", "elsevier", "wiley",
    "sigplan", "sigops", "sigbed", "sigcomm", "sigmod", "sigarch", "sigsac",
    "international", "national", "annual",
)

_HONORIFIC_RE = re.compile(r"^\s*(?:professor|prof\.?|dr\.?)\s+", re.IGNORECASE)
_PARENTHETICAL_RE = re.compile(r"\([^)]*\)")
_DBLP_NUMBER_SUFFIX_RE = re.compile(r"\s+\d{4}$")
_DBLP_VARIANT_SUFFIX_RE = re.compile(r"\s*\(Variant \d+\)$")

_SINGLE_PAGE_RE = re.compile(r"^(?:article\s+\d+|\d+|[ivxlcdm]+)$", re.IGNORECASE)
_PAGE_RANGE_RE = re.compile(r"^(?:[a-z\d]+:)?(\d+)\s*-\s*(?:[a-z\d]+:)?(\d+)$", re.IGNORECASE)


def strip_accents(s: str) -> str:
    """
    Transliterate accented and other non-ASCII characters to their closest ASCII form.
    """
    return unidecode(s)


def build_url(base: str, params: Dict[str, Any]) -> str:
    """
    Attach query parameters to a base URL and return the fully encoded address as a string.
    """
    q = urllib.parse.urlencode(params)
    return f"{base}?{q}"


def clean_text_for_comparison(text: Optional[str], observed_venue: bool = False) -> str:
    """
    Canonicalize a title or venue name for fuzzy comparison: lowercase,
    expand common abbreviations, spell out "&", drop punctuation and collapse
    whitespace.

    Venue strings observed on a profile page often carry the edition in front
    ("2019 IEEE ...", "23rd ACM ...") or the year at the end; with
    observed_venue=True those tokens are removed as well.
    """
    if not text:
        return ""
    s = str(text).lower()
    for pattern, full in _ABBREVIATION_PATTERNS:
        s = pattern.sub(full, s)
    s = s.replace("&", " and ")
    if observed_venue:
        s = _LEADING_YEAR_RE.sub("", s.strip())
        s = _TRAILING_YEAR_RE.sub("", s)
    s = _PUNCTUATION_RE.sub(" ", s)
    s = s.replace(" - ", " ")
    return " ".join(s.split())


def normalize_text(text: Optional[str]) -> str:
    """
    Light normalization used for publication titles: fold accents, lowercase,
    turn every non-word character into a space and collapse whitespace.
    """
    if not text:
        return ""
    s = strip_accents(str(text)).lower()
    s = re.sub(r"[^\w\s]", " ", s)
    return " ".join(s.split())


def _jaro(a: str, b: str) -> float:
    """
    Jaro score with greedy matching: each character of a takes the first
    unmatched equal character of b inside the window, and transpositions are
    counted by walking both matched sequences in their original order.
    """
    bound = max(0, max(len(a), len(b)) // 2 - 1)
    a_matched = [False] * len(a)
    b_matched = [False] * len(b)
    matches = 0
    for i, ch in enumerate(a):
        for j in range(max(0, i - bound), min(i + bound + 1, len(b))):
            if not b_matched[j] and b[j] == ch:
                a_matched[i] = b_matched[j] = True
                matches += 1
                break
    if not matches:
        return 0.0

    a_chars = [c for c, m in zip(a, a_matched) if m]
    b_chars = [c for c, m in zip(b, b_matched) if m]
    transpositions = sum(1 for x, y in zip(a_chars, b_chars) if x != y) / 2
    return (matches / len(a) + matches / len(b) + (matches - transpositions) / matches) / 3


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Jaro-Winkler similarity in [0, 1].

    The Jaro core uses a match window of max(0, max(len)/2 - 1) and counts
    transpositions among matched characters. The Winkler bonus is applied
    unconditionally: up to 4 characters of common prefix, weight 0.1, scaled by
    (1 - jaro). Empty input scores 0.0.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    # greedy matching is order dependent: score with the shorter string first
    if (len(a), a) > (len(b), b):
        a, b = b, a
    jaro = _jaro(a, b)
    prefix = 0
    for ca, cb in zip(a[:4], b[:4]):
        if ca != cb:
            break
        prefix += 1
    return jaro + prefix * 0.1 * (1.0 - jaro)


def strip_org_prefixes(title: str) -> str:
    """
    Repeatedly remove organizational tokens ("acm", "ieee/acm", "international", ...)
    from the start of an already cleaned conference title.
    """
    s = (title or "").strip()
    changed = True
    while changed and s:
        changed = False
        for prefix in ORG_PREFIXES:
            if s == prefix:
                s = ""
                changed = True
                break
            if s.startswith(prefix + " "):
                s = s[len(prefix) + 1:].strip()
                changed = True
                break
    return s


def sanitize_author_name(name: Optional[str]) -> str:
    """
    Reduce a profile display name to a plain person name: drop everything after
    the first comma (affiliations), honorifics, dots and parenthetical notes.
    """
    if not name:
        return ""
    s = str(name).split(",")[0]
    s = _HONORIFIC_RE.sub("", s)
    s = s.replace(".", "")
    s = _PARENTHETICAL_RE.sub("", s)
    return " ".join(s.split())


def strip_dblp_disambiguator(name: Optional[str]) -> str:
    """
    Remove DBLP's numeric homonym suffix (" 0001") and the " (Variant N)" label
    given to synthesized hub candidates.
    """
    s = (name or "").strip()
    s = _DBLP_VARIANT_SUFFIX_RE.sub("", s)
    s = _DBLP_NUMBER_SUFFIX_RE.sub("", s)
    return s.strip()


def contains_keyword(text: Optional[str], keywords) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(k in lowered for k in keywords)


def page_count(pages: Optional[str]) -> Optional[int]:
    """
    Derive a page count from a DBLP pages field. Ranges like "100-105" or
    "12:3-12:9" give end - start + 1; a bare page number, an article id or a
    roman numeral carries no length information and gives None.
    """
    if not pages:
        return None
    s = pages.strip()
    if _SINGLE_PAGE_RE.match(s):
        return None
    m = _PAGE_RANGE_RE.match(s)
    if not m:
        return None
    start, end = int(m.group(1)), int(m.group(2))
    if end < start:
        return None
    return end - start + 1


def parse_year(value: Any) -> Optional[int]:
    """
    Read a four-digit year from a string or number, returning None when absent.
    """
    if value is None:
        return None
    m = re.search(r"\b(1[89]\d{2}|20\d{2})\b", str(value))
    if not m:
        return None
    try:
        return int(m.group(1))
    except NUMERIC_ERRORS:
        return None
