from __future__ import annotations

from typing import Dict, Optional, Sequence

from .config import MATCH_TITLE_THRESHOLD, MATCH_YEAR_WINDOW
from .log_utils import logger, LogCategory, LogSource
from .models import BibliographyRecord, LocalPublication
from .text_utils import clean_text_for_comparison, similarity


def years_compatible(a: Optional[int], b: Optional[int], window: int = MATCH_YEAR_WINDOW) -> bool:
    """
    Years match when either is unknown or they differ by at most the window,
    which tolerates a preprint and its final version appearing a year apart.
    """
    if a is None or b is None:
        return True
    return abs(a - b) <= window


def match_publications(
    local_pubs: Sequence[LocalPublication],
    records: Sequence[BibliographyRecord],
) -> Dict[str, BibliographyRecord]:
    """
    Greedily pair each local publication, in input order, with the first
    DBLP record whose cleaned title scores above MATCH_TITLE_THRESHOLD and
    whose year is compatible. No backtracking; one record may serve several
    local publications.
    """
    cleaned_records = [(clean_text_for_comparison(r.title), r) for r in records]
    matched: Dict[str, BibliographyRecord] = {}
    for pub in local_pubs:
        title = clean_text_for_comparison(pub.title)
        if not title:
            continue
        for record_title, record in cleaned_records:
            if similarity(title, record_title) > MATCH_TITLE_THRESHOLD and years_compatible(pub.year, record.year):
                matched[pub.identifier] = record
                break
    logger.info(
        f"Matched {len(matched)} of {len(local_pubs)} publication(s) to DBLP records",
        category=LogCategory.MATCH, source=LogSource.DBLP,
    )
    return matched
