from __future__ import annotations

import xml.etree.ElementTree as ElementTree
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote_plus

from venuerank.models import BibliographyRecord, QuartileResult, RegistryEntry


class FakeFetcher:
    """
    Stand-in for DocumentFetcher that answers from a list of (substring, response)
    routes. The first route whose substring occurs in the URL wins. A response
    may be a value, an exception instance to raise, or a callable taking the URL.
    Unrouted URLs answer None, like a 404.
    """

    def __init__(self, routes: Sequence[Tuple[str, Any]] = ()):
        self.routes: List[Tuple[str, Any]] = list(routes)
        self.calls: List[str] = []

    def _answer(self, url: str) -> Any:
        self.calls.append(url)
        for fragment, response in self.routes:
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(url)
                return response
        return None

    def fetch_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        return self._answer(url)

    def fetch_xml(self, url: str) -> Optional[ElementTree.Element]:
        answer = self._answer(url)
        if isinstance(answer, str):
            return ElementTree.fromstring(answer)
        return answer

    def fetch_rendered_text(self, url: str) -> Optional[str]:
        return self._answer(url)

    def calls_containing(self, fragment: str) -> List[str]:
        return [u for u in self.calls if fragment in u]


def sparql_route(pid: str) -> str:
    """
    URL fragment identifying the guess-and-check query for one pid.
    """
    return quote_plus(f"<https://dblp.org/pid/{pid}>")


def author_hits(*entries: Tuple[str, str]) -> Dict[str, Any]:
    """
    Build an author-search JSON body from (display name, pid) pairs.
    """
    hits = [{"info": {"author": name, "url": f"https://dblp.org/pid/{pid}"}} for name, pid in entries]
    return {"result": {"hits": {"@total": str(len(hits)), "hit": hits}}}


def sparql_titles(*titles: str) -> Dict[str, Any]:
    return {"results": {"bindings": [{"title": {"value": t}} for t in titles]}}


SCIMAGO_SEARCH_TEXT = """Title: SCImago Journal & Country Rank

Markdown Content:
[IEEE Transactions on Mobile Computing](https://www.scimagojr.com/journalsearch.php?q=12345&tip=sid&clean=0)
[Mobile Computing and Communications Review](https://www.scimagojr.com/journalsearch.php?q=67890&tip=sid&clean=0)
[IEEE Transactions on Mobile Computing](https://www.scimagojr.com/journalsearch.php?q=12345&tip=sid&clean=0)
"""


def scimago_detail_text(title: str, rows: Sequence[Tuple[str, int, str]]) -> str:
    lines = [
        f"Title: {title}",
        "",
        "Markdown Content:",
        f"# {title}",
        "",
        "| Category | Year | Quartile |",
        "| --- | --- | --- |",
    ]
    lines.extend(f"| {category} | {year} | {quartile} |" for category, year, quartile in rows)
    return "\n".join(lines)


PERSON_XML = """<?xml version="1.0" encoding="UTF-8"?>
<dblpperson name="Jane Doe" pid="12/3456" n="4">
<person key="homepages/12/3456" mdate="2023-01-01"><author pid="12/3456">Jane Doe</author></person>
<r><inproceedings key="conf/buildsys/Doe19" mdate="2020-01-01">
<author pid="12/3456">Jane Doe</author>
<title>Occupancy detection from WiFi channel state.</title>
<pages>1-10</pages>
<year>2019</year>
<booktitle>BuildSys@SenSys</booktitle>
<url>db/conf/buildsys/buildsys2019.html#Doe19</url>
</inproceedings></r>
<r><inproceedings key="conf/buildsys/Doe20" mdate="2021-01-01">
<author pid="12/3456">Jane Doe</author>
<title>Privacy preserving smart meter analytics.</title>
<pages>100-105</pages>
<year>2020</year>
<booktitle>BuildSys</booktitle>
<url>db/conf/buildsys/buildsys2020.html#Doe20</url>
</inproceedings></r>
<r><article key="journals/imwut/Doe21" mdate="2021-06-01">
<author pid="12/3456">Jane Doe</author>
<title>Robust localization using <i>ultra wideband</i> radios.</title>
<pages>42:1-42:20</pages>
<year>2021</year>
<volume>5</volume>
<journal>Proc. ACM Interact. Mob. Wearable Ubiquitous Technol.</journal>
<number>IMWUT</number>
<url>db/journals/imwut/imwut5.html#Doe21</url>
</article></r>
<r><article mdate="2021-06-01">
<title>Entry without a key</title>
<journal>Some Journal</journal>
</article></r>
</dblpperson>
"""

BUILDSYS_STREAM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<dblpstreams>
<conf key="streams/conf/buildsys">
<acronym>BuildSys</acronym>
<title>ACM International Conference on Systems for Energy-Efficient Buildings, Cities, and Transportation</title>
</conf>
</dblpstreams>
"""


class FakeIdentity:
    def __init__(self, pid: Optional[str] = None, error: Optional[Exception] = None):
        self.pid = pid
        self.error = error
        self.calls: List[Tuple[str, List[str]]] = []

    def resolve(self, person_name: str, sample_titles: Sequence[str]) -> Optional[str]:
        self.calls.append((person_name, list(sample_titles)))
        if self.error is not None:
            raise self.error
        return self.pid


class FakeBibliography:
    def __init__(self, records: Sequence[BibliographyRecord] = (), error: Optional[Exception] = None):
        self.records = list(records)
        self.error = error
        self.calls: List[str] = []

    def fetch(self, pid: str) -> List[BibliographyRecord]:
        self.calls.append(pid)
        if self.error is not None:
            raise self.error
        return list(self.records)


class FakeQuartiles:
    def __init__(self, results: Optional[Dict[str, QuartileResult]] = None):
        self.results = results or {}
        self.calls: List[Tuple[str, Optional[int]]] = []

    def resolve(self, journal_name: str, year: Optional[int] = None) -> QuartileResult:
        self.calls.append((journal_name, year))
        return self.results.get(journal_name, QuartileResult())


class FakeRegistries:
    def __init__(self, entries: Sequence[RegistryEntry] = ()):
        self.entries = list(entries)
        self.years: List[Optional[int]] = []

    def for_year(self, year: Optional[int]) -> List[RegistryEntry]:
        self.years.append(year)
        return list(self.entries)
