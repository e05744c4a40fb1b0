from __future__ import annotations

import re
import xml.etree.ElementTree as ElementTree
from concurrent.futures import Future
from typing import Dict, List, Optional

from .cache import MemoryCache, STREAM_CACHE
from .config import DBLP_PERSON_BASE, DBLP_STREAM_BASE
from .exceptions import ConnectivityError
from .http_utils import DocumentFetcher
from .log_utils import logger, LogCategory, LogSource
from .models import BibliographyRecord
from .text_utils import parse_year

# Structural tags holding the venue name, in order of preference
VENUE_TAGS = ("booktitle", "journal", "series", "school")

_STREAM_URL_RE = re.compile(r"^db/conf/[^/]+/([a-zA-Z][\w-]*?)(\d{4}.*)?\.html")
_ISSUE_ACRONYM_RE = re.compile(r"^[A-Za-z]{2,}$")

# Journals like "Proc. ACM Hum. Comput. Interact." publish conference tracks,
# with the track acronym (CSCW, IMWUT, ...) in the issue number field
_PROCEEDINGS_JOURNAL_PREFIX = "Proc. ACM"


def _xml_text(el: Optional[ElementTree.Element]) -> str:
    """
    Read the full text content of an XML element, including nested markup,
    returning an empty string when the element is missing.
    """
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def stream_id_from_url(url: str) -> Optional[str]:
    """
    Map a DBLP table-of-contents path such as "db/conf/buildsys/buildsys2019.html"
    to its venue stream id ("buildsys").
    """
    m = _STREAM_URL_RE.match(url or "")
    return m.group(1) if m else None


def parse_stream_document(root: Optional[ElementTree.Element]) -> Optional[Dict[str, str]]:
    if root is None:
        return None
    conf = root if root.tag == "conf" else root.find("conf")
    if conf is None:
        return None
    return {"acronym": _xml_text(conf.find("acronym")), "title": _xml_text(conf.find("title"))}


class BibliographyFetcher:
    """
    Downloads the DBLP person document for a pid and turns each entry into a
    BibliographyRecord, enriched with the venue stream's acronym and full title.

    Stream metadata is memoized per stream id. Concurrent callers asking for
    the same stream share one pending Future, so each stream is fetched once.
    """

    def __init__(self, fetcher: DocumentFetcher, stream_cache: Optional[MemoryCache] = None):
        self._fetcher = fetcher
        self._streams = stream_cache if stream_cache is not None else STREAM_CACHE

    def stream_metadata(self, stream_id: str) -> Optional[Dict[str, str]]:
        created: List[Future] = []

        def new_slot() -> Future:
            slot: Future = Future()
            created.append(slot)
            return slot

        slot = self._streams.get_or_create(stream_id, new_slot)
        if not created:
            return slot.result()

        try:
            meta = parse_stream_document(self._fetcher.fetch_xml(f"{DBLP_STREAM_BASE}/{stream_id}.xml"))
        except ConnectivityError as e:
            logger.debug(f"Stream {stream_id} unavailable: {e}", category=LogCategory.FETCH, source=LogSource.DBLP)
            self._streams.discard(stream_id)
            slot.set_result(None)
            return None
        except Exception as e:
            self._streams.discard(stream_id)
            slot.set_exception(e)
            raise
        slot.set_result(meta)
        return meta

    def parse_entry(self, item: ElementTree.Element) -> Optional[BibliographyRecord]:
        key = item.get("key") or ""
        if not key:
            return None
        title = _xml_text(item.find("title"))
        if title.endswith("."):
            title = title[:-1]
        if not title:
            return None

        venue = ""
        for tag in VENUE_TAGS:
            venue = _xml_text(item.find(tag))
            if venue:
                break
        issue = _xml_text(item.find("number"))

        acronym = ""
        venue_full = ""
        stream_id = stream_id_from_url(_xml_text(item.find("url")))
        if stream_id:
            meta = self.stream_metadata(stream_id)
            if meta:
                acronym = meta.get("acronym") or ""
                venue_full = meta.get("title") or ""

        if not acronym and venue.startswith(_PROCEEDINGS_JOURNAL_PREFIX) and _ISSUE_ACRONYM_RE.match(issue):
            acronym = issue

        return BibliographyRecord(
            key=key,
            title=title,
            venue=venue,
            year=parse_year(_xml_text(item.find("year"))),
            pages=_xml_text(item.find("pages")),
            venue_full=venue_full,
            acronym=acronym,
            issue=issue,
        )

    def fetch(self, pid: str) -> List[BibliographyRecord]:
        """
        Fetch all publications of a DBLP person. Throttling raises
        RateLimitError and a failed connection raises ConnectivityError; a
        missing or malformed document yields an empty list.
        """
        if not pid:
            return []
        root = self._fetcher.fetch_xml(f"{DBLP_PERSON_BASE}/{pid}.xml")
        if root is None:
            logger.warn(f"No DBLP document for pid {pid}", category=LogCategory.FETCH, source=LogSource.DBLP)
            return []

        records: List[BibliographyRecord] = []
        for r in root.findall("r"):
            for item in r:
                if not isinstance(item.tag, str):
                    continue
                record = self.parse_entry(item)
                if record is not None:
                    records.append(record)
        logger.info(f"Fetched {len(records)} DBLP record(s) for pid {pid}", category=LogCategory.FETCH, source=LogSource.DBLP)
        return records
