from __future__ import annotations

import enum
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from .config import (
    ARXIV_VENUE_NAMES,
    DEFAULT_REGISTRY_DIR,
    IDENTITY_SAMPLE_SIZE,
    IGNORE_KEYWORDS,
    MIN_PAGE_COUNT,
    NOT_AVAILABLE,
    PROFILE_CACHE_DURATION_SECONDS,
    VALID_CORE_RANKS,
    VALID_SJR_QUARTILES,
)
from .core_rank import RegistryLoader, resolve_conference_rank
from .dblp import BibliographyFetcher
from .exceptions import ConnectivityError, RateLimitError, FIELD_ACCESS_ERRORS
from .http_utils import DocumentFetcher
from .identity import IdentityResolver
from .io_utils import MemoryProfileStore
from .log_utils import logger, LogCategory, LogSource
from .matching import match_publications
from .models import (
    BibliographyRecord,
    LocalPublication,
    RankAssignment,
    RankSystem,
    RunResult,
    RunStatus,
    empty_core_counts,
    empty_sjr_counts,
)
from .sjr import QuartileResolver
from .text_utils import clean_text_for_comparison, contains_keyword, page_count

MSG_NO_MATCH = "Could not find a matching author profile"
MSG_RATE_LIMITED = "DBLP is rate limiting requests; retry later"
MSG_ALREADY_RUNNING = "A ranking run is already in progress"

ProgressCallback = Callable[[int, int, RankAssignment], None]


class RunState(enum.Enum):
    IDLE = "idle"
    RESOLVING_IDENTITY = "resolving_identity"
    FETCHING_BIBLIOGRAPHY = "fetching_bibliography"
    MATCHING = "matching"
    RANKING = "ranking"
    DONE = "done"
    ABORTED = "aborted"


ACTIVE_STATES = frozenset({
    RunState.RESOLVING_IDENTITY,
    RunState.FETCHING_BIBLIOGRAPHY,
    RunState.MATCHING,
    RunState.RANKING,
})


class SkipReason:
    DUPLICATE_TITLE = "duplicate_title"
    IGNORED_KEYWORD = "ignored_keyword"
    NO_MATCH = "no_dblp_match"
    DUPLICATE_KEY = "duplicate_key"
    SHORT_PAPER = "short_paper"
    ARXIV = "arxiv"
    IGNORED_VENUE = "ignored_venue"


def is_arxiv_venue(record: BibliographyRecord) -> bool:
    """
    True for preprint-server entries that DBLP files under journals/ (CoRR).
    """
    key = record.key.lower()
    if key.startswith("journals/corr") or "/corr/" in key:
        return True
    for text in (record.venue, record.venue_full, record.acronym):
        padded = f" {clean_text_for_comparison(text)} "
        if any(f" {name} " in padded for name in ARXIV_VENUE_NAMES):
            return True
    return False


def journal_name_candidates(record: BibliographyRecord) -> List[str]:
    names: List[str] = []
    for name in (record.venue_full, record.venue, record.acronym):
        name = (name or "").strip()
        if name and name not in names:
            names.append(name)
    return names


class RankingOrchestrator:
    """
    Runs the whole pipeline for one researcher: identity resolution, DBLP
    fetch, matching, then ranking each publication in order.

    The orchestrator owns the run state. Only one run may be active at a
    time; a second start while one is active returns ALREADY_RUNNING and does
    nothing. Title and DBLP-key dedup sets live for one run only.
    """

    def __init__(
        self,
        identity: IdentityResolver,
        bibliography: BibliographyFetcher,
        quartiles: QuartileResolver,
        registries: RegistryLoader,
        store=None,
        cache_duration: float = PROFILE_CACHE_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.identity = identity
        self.bibliography = bibliography
        self.quartiles = quartiles
        self.registries = registries
        self.store = store if store is not None else MemoryProfileStore()
        self.cache_duration = cache_duration
        self._clock = clock
        self._state = RunState.IDLE
        self._lock = threading.Lock()

    @classmethod
    def create(
        cls,
        fetcher: Optional[DocumentFetcher] = None,
        registry_dir: str = DEFAULT_REGISTRY_DIR,
        store=None,
    ) -> "RankingOrchestrator":
        """
        Wire the default resolvers around one shared fetcher and the process-wide caches.
        """
        fetcher = fetcher or DocumentFetcher()
        return cls(
            identity=IdentityResolver(fetcher),
            bibliography=BibliographyFetcher(fetcher),
            quartiles=QuartileResolver(fetcher),
            registries=RegistryLoader(registry_dir),
            store=store,
        )

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in ACTIVE_STATES

    def _enter(self, state: RunState) -> None:
        self._state = state
        logger.debug(f"Run state: {state.value}", category=LogCategory.PLAN, source=LogSource.SYSTEM)

    # ---------------- cache ----------------

    def cached_result(self, profile_id: str) -> Optional[RunResult]:
        """
        Return the stored result for a profile if it is younger than the cache duration.
        """
        entry = self.store.get(profile_id)
        if not entry:
            return None
        try:
            timestamp = float(entry["timestamp"])
            if self._clock() - timestamp > self.cache_duration:
                return None
            assignments = [
                RankAssignment(
                    identifier=ident, rank=v["rank"], system=RankSystem(v["system"]), reason=v.get("reason", ""),
                )
                for ident, v in entry["assignments"].items()
            ]
            return RunResult(
                status=RunStatus.SUCCESS,
                pid=entry.get("dblp_pid"),
                core_counts=dict(entry["core_counts"]),
                sjr_counts=dict(entry["sjr_counts"]),
                assignments=assignments,
                from_cache=True,
                timestamp=timestamp,
            )
        except FIELD_ACCESS_ERRORS:
            logger.warn(f"Ignoring malformed cache entry for {profile_id}", category=LogCategory.SAVE, source=LogSource.CACHE)
            return None

    def _cached_pid(self, profile_id: str) -> Optional[str]:
        entry = self.store.get(profile_id) or {}
        pid = entry.get("dblp_pid")
        return pid if isinstance(pid, str) and pid else None

    def _save(self, profile_id: str, result: RunResult) -> None:
        data: Dict[str, Any] = {
            "core_counts": result.core_counts,
            "sjr_counts": result.sjr_counts,
            "assignments": {a.identifier: a.to_dict() for a in result.assignments},
            "timestamp": result.timestamp,
            "dblp_pid": result.pid,
        }
        try:
            self.store.set(profile_id, data)
            logger.info(f"Saved results for {profile_id}", category=LogCategory.SAVE, source=LogSource.CACHE)
        except OSError as e:
            logger.warn(f"Could not save results for {profile_id}: {e}", category=LogCategory.SAVE, source=LogSource.CACHE)

    def clear_cache(self, profile_id: str) -> None:
        self.store.clear(profile_id)

    # ---------------- run ----------------

    def run(
        self,
        profile_id: str,
        person_name: str,
        publications: Sequence[LocalPublication],
        sample: Optional[Sequence[LocalPublication]] = None,
        known_pid: Optional[str] = None,
        use_cache: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RunResult:
        with self._lock:
            if self.is_running:
                logger.warn(MSG_ALREADY_RUNNING, category=LogCategory.PLAN, source=LogSource.SYSTEM)
                return RunResult(status=RunStatus.ALREADY_RUNNING, message=MSG_ALREADY_RUNNING, persist=False)
            self._enter(RunState.RESOLVING_IDENTITY)

        try:
            if use_cache:
                cached = self.cached_result(profile_id)
                if cached is not None:
                    logger.info(f"Using cached results for {person_name}", category=LogCategory.AUTHOR, source=LogSource.CACHE)
                    self._enter(RunState.DONE)
                    return cached
            result = self._run(profile_id, person_name, publications, sample, known_pid, on_progress)
        except RateLimitError as e:
            logger.error(f"{MSG_RATE_LIMITED} ({e.url})", category=LogCategory.ERROR, source=LogSource.DBLP)
            self._enter(RunState.ABORTED)
            return RunResult(status=RunStatus.RATE_LIMITED, message=MSG_RATE_LIMITED, persist=False)
        except ConnectivityError as e:
            logger.error(str(e), category=LogCategory.ERROR, source=LogSource.SYSTEM)
            self._enter(RunState.ABORTED)
            return RunResult(status=RunStatus.ERROR, message=str(e), persist=False)
        except Exception:
            self._enter(RunState.ABORTED)
            raise

        self._enter(RunState.DONE if result.status == RunStatus.SUCCESS else RunState.ABORTED)
        return result

    def _run(
        self,
        profile_id: str,
        person_name: str,
        publications: Sequence[LocalPublication],
        sample: Optional[Sequence[LocalPublication]],
        known_pid: Optional[str],
        on_progress: Optional[ProgressCallback],
    ) -> RunResult:
        logger.step(f"Ranking publications of {person_name}", category=LogCategory.AUTHOR, source=LogSource.PROFILE)

        pid = known_pid or self._cached_pid(profile_id)
        if pid:
            logger.info(f"Using known DBLP pid {pid}", category=LogCategory.IDENTITY, source=LogSource.DBLP)
        else:
            sample = list(sample) if sample is not None else list(publications[:IDENTITY_SAMPLE_SIZE])
            pid = self.identity.resolve(person_name, [p.title for p in sample])
            if not pid:
                return RunResult(status=RunStatus.NO_MATCH, message=MSG_NO_MATCH, persist=False)

        self._enter(RunState.FETCHING_BIBLIOGRAPHY)
        records = self.bibliography.fetch(pid)

        self._enter(RunState.MATCHING)
        matched = match_publications(publications, records)

        self._enter(RunState.RANKING)
        result = RunResult(status=RunStatus.SUCCESS, pid=pid, core_counts=empty_core_counts(), sjr_counts=empty_sjr_counts())
        used_titles: Set[str] = set()
        used_keys: Set[str] = set()
        total = len(publications)
        for index, pub in enumerate(publications, 1):
            assignment = self.rank_publication(pub, matched.get(pub.identifier), used_titles, used_keys)
            if assignment.system == RankSystem.CORE:
                result.core_counts[assignment.rank] += 1
            elif assignment.system == RankSystem.SJR:
                result.sjr_counts[assignment.rank] += 1
            result.assignments.append(assignment)
            if on_progress is not None:
                on_progress(index, total, assignment)

        result.persist = not any(a.transient for a in result.assignments)
        result.timestamp = self._clock()
        logger.success(
            f"{person_name}: CORE {result.core_counts}, SJR {result.sjr_counts}",
            category=LogCategory.RANK, source=LogSource.PROFILE,
        )
        if result.persist:
            self._save(profile_id, result)
        else:
            logger.warn(
                "Some quartile lookups failed on connectivity; results not cached",
                category=LogCategory.SAVE, source=LogSource.CACHE,
            )
        return result

    def rank_publication(
        self,
        pub: LocalPublication,
        record: Optional[BibliographyRecord],
        used_titles: Set[str],
        used_keys: Set[str],
    ) -> RankAssignment:
        """
        Apply the ranking policy to one publication. A publication that gets a
        valid rank marks its title and DBLP key as used.
        """
        def skip(reason: str) -> RankAssignment:
            logger.debug(f"Skipping '{pub.title}': {reason}", category=LogCategory.SKIP, source=LogSource.PROFILE)
            return RankAssignment(identifier=pub.identifier, reason=reason)

        title_key = clean_text_for_comparison(pub.title)
        if title_key in used_titles:
            return skip(SkipReason.DUPLICATE_TITLE)
        if contains_keyword(pub.title, IGNORE_KEYWORDS):
            return skip(SkipReason.IGNORED_KEYWORD)
        if record is None or not record.venue:
            return skip(SkipReason.NO_MATCH)
        if record.key in used_keys:
            return skip(SkipReason.DUPLICATE_KEY)

        year = record.year if record.year is not None else pub.year
        pages = page_count(record.pages)
        if pages is not None and pages < MIN_PAGE_COUNT:
            return skip(SkipReason.SHORT_PAPER)

        if record.is_journal:
            if is_arxiv_venue(record):
                return skip(SkipReason.ARXIV)
            assignment = self._rank_journal(pub, record, year)
        else:
            if contains_keyword(record.venue, IGNORE_KEYWORDS):
                return skip(SkipReason.IGNORED_VENUE)
            registry = self.registries.for_year(year)
            rank = resolve_conference_rank(record.acronym or record.venue, registry, record.venue_full or None)
            assignment = RankAssignment(identifier=pub.identifier, rank=rank, system=RankSystem.CORE)

        if assignment.rank in VALID_CORE_RANKS or assignment.rank in VALID_SJR_QUARTILES:
            used_titles.add(title_key)
            used_keys.add(record.key)
            logger.info(
                f"'{pub.title}' -> {assignment.rank} ({assignment.system.value})",
                category=LogCategory.RANK, source=assignment.system.value,
            )
        return assignment

    def _rank_journal(self, pub: LocalPublication, record: BibliographyRecord, year: Optional[int]) -> RankAssignment:
        transient = False
        for name in journal_name_candidates(record):
            result = self.quartiles.resolve(name, year)
            if result.quartile:
                return RankAssignment(identifier=pub.identifier, rank=result.quartile, system=RankSystem.SJR)
            transient = transient or result.transient
        return RankAssignment(identifier=pub.identifier, rank=NOT_AVAILABLE, system=RankSystem.SJR, transient=transient)
