from __future__ import annotations

import os
from typing import List, Tuple

from venuerank.config import DEFAULT_DICTIONARY_FILE, DEFAULT_INPUT, DEFAULT_OUT_DIR, DEFAULT_REGISTRY_DIR
from venuerank.core_rank import RegistryLoader
from venuerank.exceptions import CSV_ERRORS, FILE_READ_ERRORS
from venuerank.io_utils import JsonProfileStore, read_publications, read_researchers, write_rank_csv
from venuerank.log_utils import logger, LogCategory, LogSource
from venuerank.models import RankAssignment, Researcher, RunResult, RunStatus
from venuerank.orchestrator import RankingOrchestrator


def process_researcher(orchestrator: RankingOrchestrator, researcher: Researcher) -> RunResult:
    """
    Load one researcher's observed publications and run the ranking pipeline on them.
    """
    try:
        publications = read_publications(researcher.publications_path)
    except FILE_READ_ERRORS + CSV_ERRORS as e:
        logger.error(f"Cannot read publications for {researcher.name}: {e}", category=LogCategory.ERROR, source=LogSource.PROFILE)
        return RunResult(status=RunStatus.ERROR, message=str(e), persist=False)

    logger.info(f"{len(publications)} publication(s) loaded", category=LogCategory.AUTHOR, source=LogSource.PROFILE)
    return orchestrator.run(
        profile_id=researcher.profile_id,
        person_name=researcher.name,
        publications=publications,
        known_pid=researcher.dblp or None,
    )


def main() -> int:
    """
    Rank the publications of every researcher listed in the input CSV, one
    researcher at a time, and write the per-publication ranks to the output
    directory.

    Returns an exit code suitable for use as a command-line entry point.
    """
    root = os.path.dirname(os.path.abspath(__file__))
    out_dir = os.path.join(root, DEFAULT_OUT_DIR)
    try:
        os.makedirs(out_dir, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create output directory '{out_dir}': {e}", category=LogCategory.ERROR)
        return 2

    logger.set_log_file(os.path.join(out_dir, "run.log"))
    logger.step("VenueRank run started", category=LogCategory.PLAN)

    try:
        researchers = read_researchers(DEFAULT_INPUT)
        logger.success(f"Input loaded: {len(researchers)} researcher(s)", category=LogCategory.PLAN)
    except FILE_READ_ERRORS + CSV_ERRORS as e:
        logger.error(f"Error reading input file: {e}", category=LogCategory.ERROR)
        logger.close()
        return 2

    registry_dir = os.path.join(root, DEFAULT_REGISTRY_DIR)
    missing = RegistryLoader(registry_dir).missing_snapshots()
    if missing:
        logger.warn(
            f"CORE snapshot(s) missing from {registry_dir}: {', '.join(missing)}. "
            "Conferences from those years will be ranked N/A; see DESIGN.md (Data files)",
            category=LogCategory.PLAN, source=LogSource.CORE,
        )

    orchestrator = RankingOrchestrator.create(
        registry_dir=registry_dir,
        store=JsonProfileStore(os.path.join(root, DEFAULT_DICTIONARY_FILE)),
    )

    rows: List[Tuple[str, RankAssignment]] = []
    outcomes = {status: 0 for status in RunStatus}
    for researcher in researchers:
        result = process_researcher(orchestrator, researcher)
        outcomes[result.status] += 1
        rows.extend((researcher.profile_id, a) for a in result.assignments)

        if result.status == RunStatus.SUCCESS:
            logger.success(
                f"Finished {researcher.name}: {result.ranked_total} ranked publication(s)"
                + (" (cached)" if result.from_cache else ""),
                category=LogCategory.AUTHOR,
            )
        elif result.status == RunStatus.RATE_LIMITED:
            logger.error("Rate limited by DBLP; stopping, retry later", category=LogCategory.ERROR)
            break
        else:
            logger.warn(f"{researcher.name}: {result.status.value} ({result.message})", category=LogCategory.AUTHOR)

    ranks_csv = os.path.join(out_dir, "ranks.csv")
    try:
        write_rank_csv(ranks_csv, rows)
    except OSError as e:
        logger.error(f"Could not write {ranks_csv}: {e}", category=LogCategory.ERROR)

    logger.step("Run complete", category=LogCategory.PLAN)
    for status, count in outcomes.items():
        if count:
            logger.info(f"{status.value}: {count}", category=LogCategory.PLAN)
    logger.info(f"Ranks CSV: {ranks_csv}", category=LogCategory.PLAN)
    logger.info(f"Log file: {logger.log_file_path or 'n/a'}", category=LogCategory.PLAN)

    logger.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
