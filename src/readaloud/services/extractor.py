"""
Readable-text extraction from web pages.

One GET per request, with a browser-like User-Agent, a wall-clock deadline
and a response size cap. The page is run through readability to find the
article body, which is then flattened to plain text.

Failures are never retried; each maps to its own caller-facing message:
    NotFoundError        host does not resolve
    RequestTimeoutError  fetch deadline exceeded
    ExtractionError      nothing readable on the page
    TransportError       anything else (refused, non-2xx, oversize body)
"""
from __future__ import annotations

import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import lxml.html
from lxml import etree
from readability import Document
from readability.readability import Unparseable

from readaloud.core.config import ExtractionConfig
from readaloud.core.logging import debug, get_logger, info, verbose, warn
from readaloud.core.metrics import metrics
from readaloud.services.errors import (
    ExtractionError,
    InvalidInputError,
    NotFoundError,
    ReadAloudError,
    RequestTimeoutError,
    TransportError,
)
from readaloud.services.validators import ValidationError, validate_url
from readaloud.utils.text import clean_extracted_text
from readaloud.utils.timeit import timeit

_LOG = get_logger("readaloud.extractor")

NOT_FOUND_MESSAGE = "Website not found. Please check the URL."
TIMEOUT_MESSAGE = "Request timeout. The website took too long to respond."
NO_CONTENT_MESSAGE = "Could not extract readable content from the URL"
FETCH_FAILED_MESSAGE = "Failed to extract text from URL. Please check if the URL is valid and accessible."

DEFAULT_TITLE = "Untitled"

# getaddrinfo messages across platforms, for errors that lost their cause
_DNS_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "no address associated with hostname",
    "temporary failure in name resolution",
)


@dataclass
class ExtractedArticle:
    """Plain text and title of a page's main content."""
    text: str
    title: str
    original_length: int
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "title": self.title,
            "originalLength": self.original_length,
            "truncated": self.truncated,
        }


def _is_dns_failure(exc: BaseException) -> bool:
    """True if ``exc`` (or anything in its cause chain) is a resolver failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        if any(hint in str(current).lower() for hint in _DNS_HINTS):
            return True
        current = current.__cause__ or current.__context__
    return False


class ContentExtractor:
    """
    Fetch a URL and pull out its readable text.

    The httpx client is created on first use and shared by all requests;
    call close() at shutdown.
    """

    def __init__(self, config: ExtractionConfig, client: Optional[httpx.Client] = None):
        self._config = config
        self._client = client
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=httpx.Timeout(self._config.timeout_s),
                        follow_redirects=True,
                        headers={
                            "User-Agent": self._config.user_agent,
                            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                        },
                    )
                    debug(_LOG, "http_client_created")
        return self._client

    def extract(self, url: Optional[str]) -> ExtractedArticle:
        """
        Fetch ``url`` and return its main text.

        Raises:
            InvalidInputError: Missing or malformed URL.
            NotFoundError, RequestTimeoutError, ExtractionError,
            TransportError: See module docstring.
        """
        try:
            url = validate_url(url)
        except ValidationError as e:
            raise InvalidInputError(e.message, details={"reason": e.code})

        info(_LOG, "extract_start", url=url)
        try:
            with timeit("extract") as t:
                raw = self._fetch(url)
                article = self._parse(raw)
        except ReadAloudError as e:
            metrics.record_extraction(e.code.lower())
            warn(_LOG, "extract_failed", url=url, code=e.code, error=e.message)
            raise

        metrics.record_extraction("success")
        info(
            _LOG,
            "extract_done",
            url=url,
            chars=article.original_length,
            title=article.title,
            seconds=round(t.seconds, 3),
        )
        return article

    def _fetch(self, url: str) -> bytes:
        """GET ``url`` and return the body, enforcing the deadline and size cap."""
        max_bytes = self._config.max_bytes
        deadline = time.monotonic() + self._config.timeout_s
        chunks = []
        total = 0

        try:
            with self._get_client().stream("GET", url) as response:
                response.raise_for_status()

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > max_bytes:
                    raise TransportError(
                        FETCH_FAILED_MESSAGE,
                        details={"reason": "response_too_large"},
                        transient=False,
                    )

                for chunk in response.iter_bytes():
                    total += len(chunk)
                    if total > max_bytes:
                        raise TransportError(
                            FETCH_FAILED_MESSAGE,
                            details={"reason": "response_too_large"},
                            transient=False,
                        )
                    if time.monotonic() > deadline:
                        raise RequestTimeoutError(TIMEOUT_MESSAGE)
                    chunks.append(chunk)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(TIMEOUT_MESSAGE) from e
        except httpx.ConnectError as e:
            if _is_dns_failure(e):
                raise NotFoundError(NOT_FOUND_MESSAGE) from e
            raise TransportError(FETCH_FAILED_MESSAGE, details={"reason": "connect_failed"}) from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                FETCH_FAILED_MESSAGE,
                details={"reason": "http_status", "status": e.response.status_code},
                transient=e.response.status_code >= 500,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(FETCH_FAILED_MESSAGE, details={"reason": type(e).__name__}) from e

        verbose(_LOG, "extract_fetched", url=url, bytes=total)
        return b"".join(chunks)

    def _parse(self, raw: bytes) -> ExtractedArticle:
        """Run readability over ``raw`` HTML and flatten the article to text."""
        if not raw.strip():
            raise ExtractionError(NO_CONTENT_MESSAGE)

        try:
            doc = Document(raw)
            summary_html = doc.summary(html_partial=True)
            title = (doc.short_title() or "").strip()
            text = ""
            if summary_html and summary_html.strip():
                text = clean_extracted_text(lxml.html.fromstring(summary_html).text_content())
        except (Unparseable, etree.LxmlError, ValueError) as e:
            raise ExtractionError(NO_CONTENT_MESSAGE) from e

        if not text:
            raise ExtractionError(NO_CONTENT_MESSAGE)

        return ExtractedArticle(
            text=text,
            title=title or DEFAULT_TITLE,
            original_length=len(text),
            truncated=False,
        )

    def close(self) -> None:
        """Close the shared HTTP client, if one was created."""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
            debug(_LOG, "http_client_closed")
