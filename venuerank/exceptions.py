from __future__ import annotations

import csv
import json
import socket
import xml.etree.ElementTree as ElementTree

import requests

__all__ = [
    "RankingError",
    "RateLimitError",
    "ConnectivityError",
    "HTTP_ERRORS",
    "TIMEOUT_ERRORS",
    "NETWORK_ERRORS",
    "DECODE_ERRORS",
    "PARSE_ERRORS",
    "FILE_IO_ERRORS",
    "NUMERIC_ERRORS",
    "JSON_ERRORS",
    "FILE_READ_ERRORS",
    "XML_PARSE_ERRORS",
    "CSV_ERRORS",
    "FIELD_ACCESS_ERRORS",
]


class RankingError(Exception):
    """
    Base class for failures that end a resolution run early.
    """


class RateLimitError(RankingError):
    """
    A remote host answered with HTTP 429. Aborts the whole run so the caller
    can offer a retry later instead of hammering the host.
    """

    def __init__(self, url: str):
        super().__init__(f"Rate limited by remote host: {url}")
        self.url = url


class ConnectivityError(RankingError):
    """
    The request itself could not be completed (DNS, refused connection, timeout).
    """

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Request to {url} failed: {cause}")
        self.url = url
        self.cause = cause


# errors raised by requests when an HTTP request fails or a URL cannot be reached
HTTP_ERRORS = (requests.exceptions.RequestException,)

# errors that signal an operation has taken too long and hit a timeout at the OS or socket level
TIMEOUT_ERRORS = (TimeoutError, socket.timeout)

# umbrella group for network-related failures, combining HTTP issues and timeouts
NETWORK_ERRORS = HTTP_ERRORS + TIMEOUT_ERRORS

# errors that occur when converting response bytes into text using a specific encoding
DECODE_ERRORS = (UnicodeDecodeError, UnicodeError)

# errors raised while interpreting structured data such as JSON, XML, or response fields
PARSE_ERRORS = (ValueError, TypeError, KeyError)

# file system operation errors when reading registries, inputs, or the profile cache
FILE_IO_ERRORS = (FileNotFoundError, OSError)

# numeric conversion errors raised during year or page parsing
NUMERIC_ERRORS = (TypeError, ValueError, OverflowError)

# JSON parsing errors when loading registry files or processing JSON API responses
JSON_ERRORS = (json.JSONDecodeError, ValueError, TypeError)

# combined file read errors including I/O failures, encoding issues, and malformed data
FILE_READ_ERRORS = FILE_IO_ERRORS + DECODE_ERRORS + PARSE_ERRORS

# XML parsing errors when processing DBLP person and stream documents
XML_PARSE_ERRORS = (ElementTree.ParseError, ValueError, TypeError)

# CSV file operation errors when reading researcher and publication lists
CSV_ERRORS = (csv.Error, OSError, UnicodeDecodeError)

# field access and attribute lookup errors when extracting data from API responses or dictionaries
# commonly occurs when navigating nested structures with missing or mistyped fields
FIELD_ACCESS_ERRORS = (TypeError, ValueError, KeyError, AttributeError)
