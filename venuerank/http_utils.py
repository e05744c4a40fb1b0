from __future__ import annotations

import json
import xml.etree.ElementTree as ElementTree
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    HTTP_BACKOFF_INITIAL,
    HTTP_MAX_RETRIES,
    HTTP_RETRY_STATUS_CODES,
    HTTP_TIMEOUT_DEFAULT,
    HTTP_TIMEOUT_RENDER,
    HTTP_TOO_MANY_REQUESTS,
    RENDER_PROXY_BASE,
)
from .exceptions import (
    ConnectivityError,
    DECODE_ERRORS,
    JSON_ERRORS,
    NETWORK_ERRORS,
    RateLimitError,
    XML_PARSE_ERRORS,
)
from .log_utils import logger, LogCategory, LogSource

# Standard HTTP headers for API requests
DEFAULT_JSON_HEADERS = {
    "User-Agent": "Mozilla/5.0 (VenueRank Client)",
    "Accept": "application/json",
}

DEFAULT_XML_HEADERS = {
    "User-Agent": "Mozilla/5.0 (VenueRank Client)",
    "Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8",
}

DEFAULT_TEXT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (VenueRank Client)",
    "Accept": "text/plain,text/markdown;q=0.9,*/*;q=0.8",
}


def build_session() -> requests.Session:
    """
    Create a pooled session that retries transient server errors with
    exponential backoff. Throttling (429) is not retried, and the final
    response is returned instead of raising so callers see the status code.
    """
    session = requests.Session()
    retry = Retry(
        total=HTTP_MAX_RETRIES,
        backoff_factor=HTTP_BACKOFF_INITIAL,
        status_forcelist=HTTP_RETRY_STATUS_CODES,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def decode_text(raw: bytes) -> str:
    """
    Decode a response body by inspecting byte order marks, trying UTF-8 first,
    and falling back to Latin-1 when needed.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        return raw.decode("utf-8-sig")
    if raw.startswith(b"\xff\xfe"):
        try:
            return raw[2:].decode("utf-16le")
        except DECODE_ERRORS:
            pass
    if raw.startswith(b"\xfe\xff"):
        try:
            return raw[2:].decode("utf-16be")
        except DECODE_ERRORS:
            pass
    try:
        return raw.decode("utf-8")
    except DECODE_ERRORS:
        return raw.decode("latin-1", errors="replace")


class DocumentFetcher:
    """
    Fetch capability shared by the DBLP and SCImago clients.

    Every method follows the same error policy: HTTP 429 raises
    RateLimitError, a transport failure raises ConnectivityError, and any other
    non-OK status or an unparseable body yields None.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
        render_timeout: float = HTTP_TIMEOUT_RENDER,
        render_proxy: str = RENDER_PROXY_BASE,
    ):
        self._session = session or build_session()
        self._timeout = timeout
        self._render_timeout = render_timeout
        self._render_proxy = render_proxy

    def _get(self, url: str, headers: Dict[str, str], timeout: float) -> Optional[bytes]:
        try:
            resp = self._session.get(url, headers=headers, timeout=timeout)
        except NETWORK_ERRORS as e:
            raise ConnectivityError(url, e) from e
        if resp.status_code == HTTP_TOO_MANY_REQUESTS:
            raise RateLimitError(url)
        if not resp.ok:
            logger.debug(f"HTTP {resp.status_code} for {url}", category=LogCategory.FETCH, source=LogSource.SYSTEM)
            return None
        return resp.content

    def fetch_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Optional[Any]:
        """
        GET a URL and parse the body as JSON.
        """
        raw = self._get(url, headers or DEFAULT_JSON_HEADERS, self._timeout)
        if raw is None:
            return None
        try:
            return json.loads(decode_text(raw))
        except JSON_ERRORS:
            logger.debug(f"Invalid JSON from {url}", category=LogCategory.FETCH, source=LogSource.SYSTEM)
            return None

    def fetch_xml(self, url: str) -> Optional[ElementTree.Element]:
        """
        GET a URL and parse the body as an XML document, returning its root element.
        """
        raw = self._get(url, DEFAULT_XML_HEADERS, self._timeout)
        if raw is None:
            return None
        try:
            # ElementTree does not expand external entities
            return ElementTree.fromstring(raw)
        except XML_PARSE_ERRORS:
            logger.debug(f"Invalid XML from {url}", category=LogCategory.FETCH, source=LogSource.SYSTEM)
            return None

    def fetch_rendered_text(self, url: str) -> Optional[str]:
        """
        Fetch a page rendered to plain text through the reader proxy.
        """
        raw = self._get(f"{self._render_proxy}{url}", DEFAULT_TEXT_HEADERS, self._render_timeout)
        if raw is None:
            return None
        text = decode_text(raw)
        return text if text.strip() else None
