from __future__ import annotations

import json
import os
import re
from typing import Any, Dict, List, Optional, Sequence

from .cache import MemoryCache, REGISTRY_CACHE
from .config import (
    CORE_AMBIGUOUS_TITLE_THRESHOLD,
    CORE_FUZZY_MIN_LENGTH,
    CORE_FUZZY_THRESHOLD,
    CORE_REGISTRY_BUCKETS,
    CORE_REGISTRY_NEWEST,
    CORE_REGISTRY_OLDEST,
    DEFAULT_REGISTRY_DIR,
    NOT_AVAILABLE,
    VALID_CORE_RANKS,
)
from .exceptions import FILE_READ_ERRORS, JSON_ERRORS
from .log_utils import logger, LogCategory, LogSource
from .models import RegistryEntry
from .text_utils import clean_text_for_comparison, similarity, strip_org_prefixes

# Several CORE exports were converted from header-less CSV files, so the first
# data row became the column names. Those accidental headers are accepted as
# field names alongside the regular ones.
_TITLE_KEYS = (
    "International Conference on Advanced Communications and Computation",
    "Information Retrieval Facility Conference",
    "title",
    "Title",
)
_ACRONYM_KEYS = ("INFOCOMP", "IRFC", "acronym", "Acronym")
_RANK_KEYS = ("Unranked", "rank", "CORE_Rating", "Rating")

_ACRONYM_SPLIT_RE = re.compile(r"[\s\-‑/.,:;&]+")
_ACRONYM_MAX_LENGTH = 8


def registry_file_for_year(year: Optional[int]) -> str:
    """
    Pick the CORE snapshot that was current when a paper appeared. Unknown
    years use the newest snapshot.
    """
    if year is None:
        return CORE_REGISTRY_NEWEST
    for lower_bound, name in CORE_REGISTRY_BUCKETS:
        if year >= lower_bound:
            return name
    return CORE_REGISTRY_OLDEST


def generate_acronym(title: str) -> str:
    """
    Build an acronym from the initials of capitalized words, up to 8 letters.
    """
    letters = []
    for word in _ACRONYM_SPLIT_RE.split(title or ""):
        if word and word[0].isascii() and word[0].isalpha() and word[0].isupper():
            letters.append(word[0])
        if len(letters) >= _ACRONYM_MAX_LENGTH:
            break
    return "".join(letters).upper()


def _first_string(raw: Dict[str, Any], keys: Sequence[str]) -> str:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str):
            return value
    return ""


def parse_registry_entry(raw: Any) -> Optional[RegistryEntry]:
    """
    Convert one raw registry row into a RegistryEntry. Ranks outside
    {A*, A, B, C} become N/A; rows with neither title nor acronym are dropped.
    """
    if not isinstance(raw, dict):
        return None
    title = _first_string(raw, _TITLE_KEYS).strip()
    acronym = _first_string(raw, _ACRONYM_KEYS).strip()
    rank = _first_string(raw, _RANK_KEYS).upper().strip()
    if rank not in VALID_CORE_RANKS:
        rank = NOT_AVAILABLE
    if not acronym and title:
        generated = generate_acronym(title)
        if len(generated) >= 2:
            acronym = generated
    if not title and not acronym:
        return None
    return RegistryEntry(title=title, acronym=acronym, rank=rank)


class RegistryLoader:
    """
    Loads CORE registry snapshots (<data_dir>/<name>.json) and memoizes them for
    the lifetime of the cache, which by default is the process.
    """

    def __init__(self, data_dir: str = DEFAULT_REGISTRY_DIR, cache: Optional[MemoryCache] = None):
        self.data_dir = data_dir
        self._cache = cache if cache is not None else REGISTRY_CACHE

    def load(self, name: str) -> Sequence[RegistryEntry]:
        path = os.path.join(self.data_dir, f"{name}.json")
        return self._cache.get_or_create(path, lambda: tuple(self._read(path)))

    def for_year(self, year: Optional[int]) -> Sequence[RegistryEntry]:
        return self.load(registry_file_for_year(year))

    def missing_snapshots(self) -> List[str]:
        """
        Names of the year-bucket snapshots that have no file in the data
        directory. Conferences in those years resolve to N/A.
        """
        names = [name for _, name in CORE_REGISTRY_BUCKETS] + [CORE_REGISTRY_OLDEST]
        return [name for name in names if not os.path.isfile(os.path.join(self.data_dir, f"{name}.json"))]

    @staticmethod
    def _read(path: str) -> List[RegistryEntry]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FILE_READ_ERRORS + JSON_ERRORS as e:
            logger.warn(f"Could not load registry {path}: {e}", category=LogCategory.FETCH, source=LogSource.CORE)
            return []
        if not isinstance(data, list):
            logger.warn(f"Registry {path} is not a list", category=LogCategory.FETCH, source=LogSource.CORE)
            return []
        entries = [e for e in (parse_registry_entry(raw) for raw in data) if e is not None]
        logger.debug(f"Loaded {len(entries)} entries from {path}", category=LogCategory.FETCH, source=LogSource.CORE)
        return entries


def _valid_or_na(rank: str) -> str:
    return rank if rank in VALID_CORE_RANKS else NOT_AVAILABLE


def _resolve_ambiguous(matches: Sequence[RegistryEntry], full_venue_title: Optional[str]) -> str:
    if not full_venue_title:
        return NOT_AVAILABLE
    cleaned_full = clean_text_for_comparison(full_venue_title)
    best_entry = None
    best_score = 0.0
    for entry in matches:
        score = similarity(cleaned_full, clean_text_for_comparison(entry.title))
        if score > best_score:
            best_score = score
            best_entry = entry
        if best_score == 1.0:
            break
    if best_entry is not None and best_score >= CORE_AMBIGUOUS_TITLE_THRESHOLD:
        return _valid_or_na(best_entry.rank)
    return NOT_AVAILABLE


def _substring_rank(candidate: str, registry: Sequence[RegistryEntry]) -> Optional[str]:
    best_title = ""
    best_rank = None
    for entry in registry:
        title = strip_org_prefixes(clean_text_for_comparison(entry.title))
        if title and title in candidate and len(title) > len(best_title):
            best_title = title
            best_rank = entry.rank
    if best_rank in VALID_CORE_RANKS:
        return best_rank
    return None


def _fuzzy_rank(candidate: str, registry: Sequence[RegistryEntry]) -> Optional[str]:
    if len(candidate) < CORE_FUZZY_MIN_LENGTH:
        return None
    best_score = 0.0
    best_rank = None
    for entry in registry:
        title = strip_org_prefixes(clean_text_for_comparison(entry.title))
        if len(title) < CORE_FUZZY_MIN_LENGTH:
            continue
        score = similarity(candidate, title)
        if score >= CORE_FUZZY_THRESHOLD and score > best_score:
            best_score = score
            best_rank = entry.rank
            if score == 1.0:
                break
    if best_rank in VALID_CORE_RANKS:
        return best_rank
    return None


def resolve_conference_rank(
    venue_key: Optional[str],
    registry: Sequence[RegistryEntry],
    full_venue_title: Optional[str] = None,
) -> str:
    """
    Resolve a venue to a CORE rank (A*, A, B, C) or N/A.

    An exact acronym hit is decisive. An acronym shared by several entries is
    settled by full-title similarity alone and never falls through to the
    title searches. Without an acronym hit, the venue key and then the full
    title are tried in turn, first by longest contained registry title and
    then by whole-string fuzzy match; the first candidate with a hit wins.
    """
    key = (venue_key or "").strip().lower()
    if key:
        matches = [e for e in registry if e.acronym and e.acronym.strip().lower() == key]
        if len(matches) == 1:
            return _valid_or_na(matches[0].rank)
        if len(matches) > 1:
            return _resolve_ambiguous(matches, full_venue_title)

    candidates: List[str] = []
    sources = ((venue_key, True), (full_venue_title, False))
    for text, observed in sources:
        cleaned = clean_text_for_comparison((text or "").lower(), observed_venue=observed)
        if cleaned and cleaned not in candidates:
            candidates.append(cleaned)

    for candidate in candidates:
        rank = _substring_rank(candidate, registry)
        if rank is None:
            rank = _fuzzy_rank(candidate, registry)
        if rank is not None:
            return rank
    return NOT_AVAILABLE
