from __future__ import annotations

import csv
import json
import os
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_DICTIONARY_FILE, DEFAULT_INPUT
from .exceptions import FILE_READ_ERRORS
from .models import LocalPublication, RankAssignment, Researcher
from .text_utils import parse_year

_RANKS_CSV_FIELDNAMES = ["profile", "identifier", "rank", "system", "reason"]


def _project_root() -> str:
    """
    Return the absolute path to the project root directory, inferred from the location of this module on disk.
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))


def _candidate_paths(primary: str) -> List[str]:
    """
    Return the given path and, for relative paths, its project-root-relative variant.
    """
    candidates = [primary]
    if not os.path.isabs(primary):
        rooted = os.path.join(_project_root(), primary)
        if rooted != primary:
            candidates.append(rooted)
    return candidates


def _read_csv_rows(path: str) -> Tuple[str, List[Dict[str, str]]]:
    candidates = _candidate_paths(path)
    for p in candidates:
        try:
            with open(p, newline="", encoding="utf-8") as csvfile:
                rows = [row for row in csv.DictReader(csvfile) if any((v or "").strip() for v in row.values())]
            return p, rows
        except FileNotFoundError:
            continue
    raise FileNotFoundError(f"Input file not found (tried: {', '.join(candidates)})")


def read_researchers(path: str = DEFAULT_INPUT) -> List[Researcher]:
    """
    Load researchers from a CSV with Name, Profile, Publications and optional
    DBLP columns. Publication paths are resolved relative to the input file.
    """
    found, rows = _read_csv_rows(path)
    base_dir = os.path.dirname(found)
    researchers: List[Researcher] = []
    for row in rows:
        name = (row.get("Name") or "").strip()
        if not name:
            continue
        pubs = (row.get("Publications") or "").strip()
        if pubs and not os.path.isabs(pubs):
            pubs = os.path.join(base_dir, pubs)
        researchers.append(
            Researcher(
                name=name,
                profile_id=(row.get("Profile") or "").strip() or name,
                publications_path=pubs,
                dblp=(row.get("DBLP") or "").strip(),
            )
        )
    if not researchers:
        raise ValueError("No researchers with a name found in input file.")
    return researchers


def read_publications(path: str) -> List[LocalPublication]:
    """
    Load one researcher's observed publications from a CSV with Title, Year
    and Identifier columns. Rows without an identifier get a positional one.
    """
    _, rows = _read_csv_rows(path)
    pubs: List[LocalPublication] = []
    for index, row in enumerate(rows):
        title = (row.get("Title") or "").strip()
        if not title:
            continue
        pubs.append(
            LocalPublication(
                title=title,
                year=parse_year(row.get("Year")),
                identifier=(row.get("Identifier") or "").strip() or f"row-{index + 1}",
            )
        )
    return pubs


def safe_read_json(path: str, default: Any = None) -> Any:
    """
    Safely read a JSON file and return its parsed contents, returning a default value on error.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FILE_READ_ERRORS:
        return default


def safe_write_json(path: str, data: Any, makedirs: bool = True, indent: Optional[int] = 2) -> bool:
    """
    Safely write data to a JSON file, optionally creating parent directories.
    """
    if makedirs:
        parent_dir = os.path.dirname(path)
        if parent_dir:
            try:
                os.makedirs(parent_dir, exist_ok=True)
            except OSError:
                return False

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent)
        return True
    except (OSError, TypeError):
        return False


class MemoryProfileStore:
    """
    Profile store kept in memory; the default when no file is configured.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}

    def get(self, profile_id: str) -> Optional[Dict[str, Any]]:
        return self._data.get(profile_id)

    def set(self, profile_id: str, data: Dict[str, Any]) -> None:
        self._data[profile_id] = data

    def clear(self, profile_id: str) -> None:
        self._data.pop(profile_id, None)


class JsonProfileStore:
    """
    Profile store backed by a single JSON file mapping profile ids to their
    last computed counts, rank assignments, timestamp and DBLP pid.
    """

    def __init__(self, path: str = DEFAULT_DICTIONARY_FILE):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        data = safe_read_json(self.path, default={})
        return data if isinstance(data, dict) else {}

    def get(self, profile_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._load().get(profile_id)
        return entry if isinstance(entry, dict) else None

    def set(self, profile_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            all_data = self._load()
            all_data[profile_id] = data
            if not safe_write_json(self.path, all_data):
                raise OSError(f"Could not write profile cache {self.path}")

    def clear(self, profile_id: str) -> None:
        with self._lock:
            all_data = self._load()
            if all_data.pop(profile_id, None) is not None:
                safe_write_json(self.path, all_data)


def write_rank_csv(path: str, rows: Sequence[Tuple[str, RankAssignment]]) -> None:
    """
    Write (profile, assignment) pairs to a CSV file, creating the parent directory if needed.
    """
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=_RANKS_CSV_FIELDNAMES)
        writer.writeheader()
        for profile, a in rows:
            writer.writerow({
                "profile": profile,
                "identifier": a.identifier,
                "rank": a.rank,
                "system": a.system.value,
                "reason": a.reason,
            })
