from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import NOT_AVAILABLE, VALID_CORE_RANKS, VALID_SJR_QUARTILES


class RankSystem(str, enum.Enum):
    CORE = "CORE"
    SJR = "SJR"
    UNKNOWN = "UNKNOWN"


class RunStatus(str, enum.Enum):
    """
    Terminal tag of a resolution run, so callers never need to inspect messages.
    """
    SUCCESS = "success"
    NO_MATCH = "no_match"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
    ALREADY_RUNNING = "already_running"


@dataclass
class Researcher:
    """
    One researcher from the input list: display name, a stable profile
    identifier used as the cache key, the CSV holding their observed
    publications, and an optional known DBLP pid.
    """
    name: str
    profile_id: str
    publications_path: str = ""
    dblp: str = ""


@dataclass(frozen=True)
class RegistryEntry:
    title: str
    acronym: str
    rank: str = NOT_AVAILABLE


@dataclass(frozen=True)
class QuartileRecord:
    """
    A journal's quartile history as resolved from SCImago.
    """
    resolved_title: str
    quartiles_by_year: Dict[int, str]


@dataclass(frozen=True)
class QuartileResult:
    quartile: Optional[str] = None
    year: Optional[int] = None
    resolved_title: Optional[str] = None
    transient: bool = False  # lookup failed on connectivity; not cached


@dataclass
class BibliographyRecord:
    """
    One DBLP publication entry. The key namespace tells journal articles
    ("journals/...") apart from conference papers and everything else.
    """
    key: str
    title: str
    venue: str = ""
    year: Optional[int] = None
    pages: str = ""
    venue_full: str = ""
    acronym: str = ""
    issue: str = ""

    @property
    def is_journal(self) -> bool:
        return self.key.startswith("journals/")


@dataclass
class LocalPublication:
    title: str
    year: Optional[int] = None
    identifier: str = ""


@dataclass(frozen=True)
class CandidateIdentity:
    pid: str
    display_name: str


_RANKS_BY_SYSTEM = {
    RankSystem.CORE: set(VALID_CORE_RANKS) | {NOT_AVAILABLE},
    RankSystem.SJR: set(VALID_SJR_QUARTILES) | {NOT_AVAILABLE},
    RankSystem.UNKNOWN: {NOT_AVAILABLE},
}


@dataclass(frozen=True)
class RankAssignment:
    """
    The rank assigned to one observed publication. The rank must belong to
    the system's own enumeration (or be N/A); anything else is rejected.
    """
    identifier: str
    rank: str = NOT_AVAILABLE
    system: RankSystem = RankSystem.UNKNOWN
    reason: str = ""
    transient: bool = False  # quartile lookup failed on connectivity

    def __post_init__(self):
        if self.rank not in _RANKS_BY_SYSTEM[self.system]:
            raise ValueError(f"Rank {self.rank!r} is not valid for system {self.system.value}")

    def to_dict(self) -> Dict[str, str]:
        return {"rank": self.rank, "system": self.system.value, "reason": self.reason}


def empty_core_counts() -> Dict[str, int]:
    return {rank: 0 for rank in VALID_CORE_RANKS + (NOT_AVAILABLE,)}


def empty_sjr_counts() -> Dict[str, int]:
    return {q: 0 for q in VALID_SJR_QUARTILES + (NOT_AVAILABLE,)}


@dataclass
class RunResult:
    status: RunStatus
    pid: Optional[str] = None
    core_counts: Dict[str, int] = field(default_factory=empty_core_counts)
    sjr_counts: Dict[str, int] = field(default_factory=empty_sjr_counts)
    assignments: List[RankAssignment] = field(default_factory=list)
    message: str = ""
    persist: bool = True
    from_cache: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def ranked_total(self) -> int:
        return sum(self.core_counts.values()) + sum(self.sjr_counts.values())
