from unittest.mock import MagicMock

import pytest
import requests
from venuerank import http_utils
from venuerank.exceptions import ConnectivityError, RateLimitError


def _response(status=200, content=b""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.content = content
    return resp


def _fetcher(*responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return http_utils.DocumentFetcher(session=session, render_proxy="https://proxy.test/"), session

# ===== DECODING =====

def test_decode_text():
    """
    Test BOM handling and the Latin-1 fallback.
    """
    test_cases = [
        (b"plain", "plain"),
        ("café".encode("utf-8"), "café"),
        (b"\xef\xbb\xbfbom", "bom"),
        (b"\xff\xfe" + "hi".encode("utf-16le"), "hi"),
        (b"\xfe\xff" + "hi".encode("utf-16be"), "hi"),
        ("caf\xe9".encode("latin-1"), "café"),
    ]
    for raw, expected in test_cases:
        output = http_utils.decode_text(raw)
        assert output == expected, f"Expected {expected!r}, got {output!r}"

# ===== FETCH POLICY =====

def test_fetch_json_ok():
    fetcher, session = _fetcher(_response(200, b'{"a": [1, 2]}'))
    assert fetcher.fetch_json("https://api.test/x") == {"a": [1, 2]}
    _, kwargs = session.get.call_args
    assert kwargs["headers"] == http_utils.DEFAULT_JSON_HEADERS

def test_fetch_json_custom_headers():
    fetcher, session = _fetcher(_response(200, b"{}"))
    fetcher.fetch_json("https://api.test/x", headers={"Accept": "application/sparql-results+json"})
    _, kwargs = session.get.call_args
    assert kwargs["headers"] == {"Accept": "application/sparql-results+json"}

def test_rate_limit_raises():
    fetcher, _ = _fetcher(_response(429))
    with pytest.raises(RateLimitError) as excinfo:
        fetcher.fetch_json("https://api.test/x")
    assert excinfo.value.url == "https://api.test/x"

def test_transport_failure_raises_connectivity_error():
    fetcher, _ = _fetcher(requests.exceptions.ConnectionError("refused"))
    with pytest.raises(ConnectivityError):
        fetcher.fetch_xml("https://api.test/x.xml")

    fetcher, _ = _fetcher(requests.exceptions.Timeout("slow"))
    with pytest.raises(ConnectivityError):
        fetcher.fetch_rendered_text("https://site.test/page")

def test_other_failures_return_none():
    """
    Test that non-OK statuses and unparseable bodies yield None.
    """
    fetcher, _ = _fetcher(_response(404), _response(500), _response(200, b"not json"), _response(200, b"<unclosed"))
    assert fetcher.fetch_json("https://api.test/a") is None
    assert fetcher.fetch_xml("https://api.test/b") is None
    assert fetcher.fetch_json("https://api.test/c") is None
    assert fetcher.fetch_xml("https://api.test/d") is None

def test_fetch_xml_returns_root():
    fetcher, _ = _fetcher(_response(200, b"<dblpperson><r/></dblpperson>"))
    root = fetcher.fetch_xml("https://dblp.test/pid/1/1.xml")
    assert root.tag == "dblpperson"
    assert len(root.findall("r")) == 1

def test_fetch_rendered_text_uses_proxy():
    fetcher, session = _fetcher(_response(200, b"Title: Page\n\nbody"), _response(200, b"   \n"))
    assert fetcher.fetch_rendered_text("https://site.test/page?q=1") == "Title: Page\n\nbody"
    args, kwargs = session.get.call_args
    assert args[0] == "https://proxy.test/https://site.test/page?q=1"
    assert kwargs["timeout"] == http_utils.HTTP_TIMEOUT_RENDER
    assert fetcher.fetch_rendered_text("https://site.test/blank") is None

def test_build_session_retry_policy():
    """
    Test that throttling is excluded from automatic retries.
    """
    session = http_utils.build_session()
    retry = session.get_adapter("https://dblp.org").max_retries
    assert 429 not in retry.status_forcelist
    assert 503 in retry.status_forcelist
    assert retry.raise_on_status is False
