from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from .cache import MemoryCache, QUARTILE_CACHE
from .config import (
    SCIMAGO_SEARCH_BASE,
    SJR_BATCH_SIZE,
    SJR_EARLY_STOP_SCORE,
    SJR_MAX_CANDIDATES,
    VALID_SJR_QUARTILES,
)
from .exceptions import ConnectivityError
from .http_utils import DocumentFetcher
from .log_utils import logger, LogCategory, LogSource
from .models import QuartileRecord, QuartileResult
from .text_utils import build_url, normalize_text, similarity

_CANDIDATE_ID_RE = re.compile(r"journalsearch\.php\?q=(\d+)&(?:amp;)?tip=sid")
_TITLE_LINE_RE = re.compile(r"^Title:\s*(.+?)\s*$", re.MULTILINE)
_HEADING_RE = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)
_YEAR_QUARTILE_RE = re.compile(r"\b((?:19|20)\d{2})[\s|,;]+(Q[1-4])\b")


def search_url(query: str) -> str:
    return build_url(SCIMAGO_SEARCH_BASE, {"q": query})


def detail_url(source_id: str) -> str:
    return build_url(SCIMAGO_SEARCH_BASE, {"q": source_id, "tip": "sid", "clean": 0})


def extract_candidate_ids(text: str, limit: int = SJR_MAX_CANDIDATES) -> List[str]:
    """
    Pull distinct SCImago source ids from the links of a rendered search page, in page order.
    """
    ids: List[str] = []
    for m in _CANDIDATE_ID_RE.finditer(text or ""):
        sid = m.group(1)
        if sid not in ids:
            ids.append(sid)
            if len(ids) >= limit:
                break
    return ids


def extract_title(text: str) -> Optional[str]:
    for pattern in (_TITLE_LINE_RE, _HEADING_RE):
        for m in pattern.finditer(text or ""):
            title = m.group(1).strip()
            if title and "scimago" not in title.lower():
                return title
    return None


def extract_quartiles(text: str) -> Dict[int, str]:
    """
    Read the category/year/quartile table of a rendered detail page. A journal
    listed in several categories has several rows per year; the best quartile wins.
    """
    quartiles: Dict[int, str] = {}
    for m in _YEAR_QUARTILE_RE.finditer(text or ""):
        year, quartile = int(m.group(1)), m.group(2)
        current = quartiles.get(year)
        if current is None or quartile < current:
            quartiles[year] = quartile
    return quartiles


def select_quartile_for_year(quartiles: Dict[int, str], year: Optional[int]) -> Tuple[Optional[str], Optional[int]]:
    """
    Choose the quartile to report for a publication year: the exact year if
    listed, otherwise the latest earlier year, otherwise the latest year known.
    """
    if not quartiles:
        return None, None
    if year is not None:
        if year in quartiles:
            return quartiles[year], year
        earlier = [y for y in quartiles if y < year]
        if earlier:
            best = max(earlier)
            return quartiles[best], best
    latest = max(quartiles)
    return quartiles[latest], latest


class QuartileResolver:
    """
    Resolves a journal name to an SJR quartile by searching SCImago and
    scoring the candidate journals' titles against the query.

    Lookups are cached per normalized query, misses included, so a journal
    that could not be found is not searched for again.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        cache: Optional[MemoryCache] = None,
        max_candidates: int = SJR_MAX_CANDIDATES,
        batch_size: int = SJR_BATCH_SIZE,
        early_stop_score: float = SJR_EARLY_STOP_SCORE,
    ):
        self._fetcher = fetcher
        self._cache = cache if cache is not None else QUARTILE_CACHE
        self.max_candidates = max_candidates
        self.batch_size = batch_size
        self.early_stop_score = early_stop_score

    def resolve(self, journal_name: Optional[str], year: Optional[int] = None) -> QuartileResult:
        query = normalize_text(journal_name)
        if not query:
            return QuartileResult()

        if self._cache.contains(query):
            record = self._cache.get(query)
            logger.debug(f"Cache hit for '{query}'", category=LogCategory.SEARCH, source=LogSource.SJR)
        else:
            try:
                record = self._lookup(query)
            except ConnectivityError as e:
                logger.warn(f"Quartile lookup for '{journal_name}' failed: {e}", category=LogCategory.ERROR, source=LogSource.SJR)
                return QuartileResult(transient=True)
            self._cache.set(query, record)

        if record is None:
            return QuartileResult()
        quartile, chosen_year = select_quartile_for_year(record.quartiles_by_year, year)
        if quartile not in VALID_SJR_QUARTILES:
            return QuartileResult(resolved_title=record.resolved_title)
        return QuartileResult(quartile=quartile, year=chosen_year, resolved_title=record.resolved_title)

    def _lookup(self, query: str) -> Optional[QuartileRecord]:
        text = self._fetcher.fetch_rendered_text(search_url(query))
        ids = extract_candidate_ids(text or "", self.max_candidates)
        if not ids:
            logger.info(f"No SCImago candidates for '{query}'", category=LogCategory.SEARCH, source=LogSource.SJR)
            return None

        best_record: Optional[QuartileRecord] = None
        best_score = 0.0
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, len(ids), self.batch_size):
                batch = ids[start:start + self.batch_size]
                for record in executor.map(self._fetch_detail, batch):
                    if record is None:
                        continue
                    score = similarity(query, normalize_text(record.resolved_title))
                    if score > best_score:
                        best_score = score
                        best_record = record
                if best_score >= self.early_stop_score:
                    break

        if best_record is not None:
            logger.info(
                f"'{query}' resolved to '{best_record.resolved_title}' (score {best_score:.3f})",
                category=LogCategory.MATCH, source=LogSource.SJR,
            )
        return best_record

    def _fetch_detail(self, source_id: str) -> Optional[QuartileRecord]:
        text = self._fetcher.fetch_rendered_text(detail_url(source_id))
        if not text:
            return None
        title = extract_title(text)
        quartiles = extract_quartiles(text)
        if not title or not quartiles:
            return None
        return QuartileRecord(resolved_title=title, quartiles_by_year=quartiles)
