from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .config import (
    DBLP_AUTHOR_SEARCH_BASE,
    DBLP_HUB_HIT_THRESHOLD,
    DBLP_MAX_HUB_VARIANTS,
    DBLP_SAMPLE_FETCH_LIMIT,
    DBLP_SEARCH_MAX_HITS,
    DBLP_SPARQL_ENDPOINT,
    IDENTITY_ACCEPT_SCORE,
    IDENTITY_MIN_NAME_SIMILARITY,
    IDENTITY_MIN_OVERLAP,
    IDENTITY_NAME_WEIGHT,
    IDENTITY_TITLE_OVERLAP_THRESHOLD,
)
from .exceptions import ConnectivityError, FIELD_ACCESS_ERRORS
from .http_utils import DocumentFetcher
from .log_utils import logger, LogCategory, LogSource
from .models import CandidateIdentity
from .text_utils import (
    build_url,
    normalize_text,
    sanitize_author_name,
    similarity,
    strip_dblp_disambiguator,
)

SPARQL_HEADERS = {
    "User-Agent": "Mozilla/5.0 (VenueRank Client)",
    "Accept": "application/sparql-results+json",
}

_PID_PATTERNS = (
    re.compile(r"pid/([^/]+/[^.]+)"),
    re.compile(r"pers/hd/[a-z0-9]/([^.]+)"),
    re.compile(r"pid/([\w/-]+)\.html"),
)


def extract_pid_from_url(url: Optional[str]) -> Optional[str]:
    """
    Extract a DBLP person identifier from a profile URL, handling both the
    current /pid/ form and the legacy /pers/hd/ form.
    """
    if not url:
        return None
    for pattern in _PID_PATTERNS:
        m = pattern.search(url)
        if m:
            return m.group(1).replace("=", "")
    return None


def base_pid(pid: str) -> str:
    return pid.split("-")[0]


def _hits_from_search(data: Any) -> List[Dict[str, Any]]:
    try:
        hits = data["result"]["hits"].get("hit") or []
    except FIELD_ACCESS_ERRORS:
        return []
    if isinstance(hits, dict):
        hits = [hits]
    return [h for h in hits if isinstance(h, dict)]


def build_candidates(person_name: str, hits: Sequence[Dict[str, Any]]) -> List[CandidateIdentity]:
    """
    Turn raw author-search hits into candidates to check.

    When one base pid accounts for more than DBLP_HUB_HIT_THRESHOLD hits the
    listing is a hub that merges several real people; its sub-identities cannot
    be enumerated from the search results, so base-1 .. base-N are synthesized
    instead and the raw hits are discarded.
    """
    raw: List[CandidateIdentity] = []
    for hit in hits:
        info = hit.get("info") or {}
        pid = extract_pid_from_url(info.get("url"))
        if not pid:
            continue
        raw.append(CandidateIdentity(pid=pid, display_name=str(info.get("author") or "")))

    counts = Counter(base_pid(c.pid) for c in raw)
    if counts:
        hub, count = counts.most_common(1)[0]
        if count > DBLP_HUB_HIT_THRESHOLD:
            logger.info(f"Hub listing detected for base pid {hub} ({count} hits)", category=LogCategory.IDENTITY, source=LogSource.DBLP)
            return [
                CandidateIdentity(pid=f"{hub}-{i}", display_name=f"{person_name} (Variant {i})")
                for i in range(1, DBLP_MAX_HUB_VARIANTS + 1)
            ]
    return raw


def title_overlap(sample_titles: Sequence[str], fetched_titles: Sequence[str]) -> int:
    """
    Count sample titles that have at least one sufficiently similar fetched title.
    """
    fetched = [normalize_text(t) for t in fetched_titles]
    overlap = 0
    for title in sample_titles:
        normalized = normalize_text(title)
        if any(similarity(normalized, f) > IDENTITY_TITLE_OVERLAP_THRESHOLD for f in fetched):
            overlap += 1
    return overlap


@dataclass
class CandidateScore:
    candidate: CandidateIdentity
    name_similarity: float
    overlap: int

    @property
    def score(self) -> float:
        return self.name_similarity * IDENTITY_NAME_WEIGHT + self.overlap


def pick_best(scores: Sequence[CandidateScore]) -> Optional[CandidateScore]:
    """
    Keep the first strictly best-scoring candidate with enough overlapping
    titles, and accept it only if its score clears IDENTITY_ACCEPT_SCORE.
    """
    best: Optional[CandidateScore] = None
    for s in scores:
        if s.overlap >= IDENTITY_MIN_OVERLAP and (best is None or s.score > best.score):
            best = s
    if best is not None and best.score >= IDENTITY_ACCEPT_SCORE:
        return best
    return None


def sample_query(pid: str, limit: int = DBLP_SAMPLE_FETCH_LIMIT) -> str:
    return (
        "PREFIX dblp: <https://dblp.org/rdf/schema#> "
        "SELECT ?title ?year WHERE { "
        f"?paper dblp:authoredBy <https://dblp.org/pid/{pid}> . "
        "?paper dblp:title ?title . "
        "OPTIONAL { ?paper dblp:yearOfPublication ?year . } "
        f"}} LIMIT {limit}"
    )


class IdentityResolver:
    """
    Disambiguates a researcher's name to a DBLP pid by guess-and-check:
    every plausible candidate's publications are fetched and compared
    against a sample of the researcher's own titles.
    """

    def __init__(self, fetcher: DocumentFetcher):
        self._fetcher = fetcher

    def search(self, person_name: str) -> List[CandidateIdentity]:
        """
        Query the author index. A 429 escalates as RateLimitError; any other
        failed response means no candidates.
        """
        url = build_url(DBLP_AUTHOR_SEARCH_BASE, {"q": person_name, "format": "json", "h": DBLP_SEARCH_MAX_HITS})
        data = self._fetcher.fetch_json(url)
        if data is None:
            return []
        return build_candidates(person_name, _hits_from_search(data))

    def fetch_sample_titles(self, pid: str) -> List[str]:
        """
        Fetch up to DBLP_SAMPLE_FETCH_LIMIT titles for a candidate pid. A
        synthesized pid that does not exist simply yields no titles.
        """
        url = build_url(DBLP_SPARQL_ENDPOINT, {"query": sample_query(pid), "output": "json"})
        try:
            data = self._fetcher.fetch_json(url, headers=SPARQL_HEADERS)
        except ConnectivityError:
            return []
        if data is None:
            return []
        try:
            bindings = data["results"]["bindings"]
        except FIELD_ACCESS_ERRORS:
            return []
        titles = []
        for row in bindings or []:
            try:
                title = row["title"]["value"]
            except FIELD_ACCESS_ERRORS:
                continue
            if title:
                titles.append(title)
        return titles

    def resolve(self, person_name: str, sample_titles: Sequence[str]) -> Optional[str]:
        name = sanitize_author_name(person_name)
        if not name or len(sample_titles) < IDENTITY_MIN_OVERLAP:
            logger.warn(
                f"Not enough data to resolve identity for '{person_name}'",
                category=LogCategory.IDENTITY, source=LogSource.DBLP,
            )
            return None

        candidates = self.search(name)
        logger.info(f"{len(candidates)} candidate(s) for '{name}'", category=LogCategory.IDENTITY, source=LogSource.DBLP)

        scores: List[CandidateScore] = []
        for candidate in candidates:
            dblp_name = strip_dblp_disambiguator(candidate.display_name)
            name_sim = similarity(name.lower(), dblp_name.lower())
            if name_sim < IDENTITY_MIN_NAME_SIMILARITY:
                continue
            fetched = self.fetch_sample_titles(candidate.pid)
            if not fetched:
                continue
            scored = CandidateScore(candidate, name_sim, title_overlap(sample_titles, fetched))
            logger.debug(
                f"Candidate {candidate.pid}: score {scored.score:.2f}, overlap {scored.overlap}",
                category=LogCategory.IDENTITY, source=LogSource.DBLP,
            )
            scores.append(scored)

        best = pick_best(scores)
        if best is None:
            logger.warn(f"No DBLP profile matched '{name}'", category=LogCategory.IDENTITY, source=LogSource.DBLP)
            return None
        logger.success(
            f"'{name}' resolved to DBLP pid {best.candidate.pid} (score {best.score:.2f})",
            category=LogCategory.IDENTITY, source=LogSource.DBLP,
        )
        return best.candidate.pid
