"""
HTTP fetcher for upstream forecast sources.

One GET per call, no retries and no cookie state carried between calls.
The whole request, connect through last byte of the body, is bounded by a
wall-clock timeout: connecting and waiting for the headers are each bounded
by the requests timeout, and once the headers are in a watchdog shuts the
socket down when the deadline passes, so a server trickling bytes cannot
hold a worker past it.

NOTE a non-2xx status is not a failure here: at least one provider serves
its data with misleading status codes, so only transport errors count.
"""

import logging
import threading
import time
from enum import Enum

import requests
from urllib3.exceptions import ReadTimeoutError

from .config import DATA_REQUEST_TIMEOUT_SECONDS, USER_AGENT

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


class FetchErrorKind(Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"


class FetchError(Exception):
    """Raised when a body could not be obtained from a source."""

    def __init__(self, kind: FetchErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


def is_timeout(error: requests.RequestException) -> bool:
    """
    True for connect and read timeouts.

    A read timeout while streaming the body reaches us as a
    requests.ConnectionError wrapping urllib3's ReadTimeoutError.
    """
    if isinstance(error, requests.Timeout):
        return True
    if isinstance(error.__context__, ReadTimeoutError):
        return True
    return any(isinstance(arg, ReadTimeoutError) for arg in error.args)


class SourceFetcher:
    """Stateless fetcher; safe to share between worker threads."""

    def __init__(self, timeout: float = DATA_REQUEST_TIMEOUT_SECONDS, user_agent: str = USER_AGENT):
        self.timeout = timeout
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "application/json, application/xml, text/xml, application/rss+xml, text/html, */*",
        }

    def fetch(self, url: str) -> str:
        """Fetch a URL and return the decoded body, or raise FetchError."""
        start_time = time.monotonic()
        deadline = start_time + self.timeout
        expired = threading.Event()

        try:
            with requests.get(url, headers=self._headers, timeout=self.timeout, stream=True) as response:
                watchdog = threading.Timer(
                    max(0.0, deadline - time.monotonic()), self._abort_read, args=(response, expired)
                )
                watchdog.daemon = True
                watchdog.start()
                try:
                    chunks = []
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        chunks.append(chunk)
                        if time.monotonic() > deadline:
                            raise self._timeout_error()
                finally:
                    watchdog.cancel()

                if expired.is_set():
                    raise self._timeout_error()

                status_code = response.status_code
                encoding = response.encoding or "utf-8"

        except requests.RequestException as e:
            if expired.is_set() or is_timeout(e):
                raise self._timeout_error() from e
            raise FetchError(FetchErrorKind.NETWORK, f"Request failed: {e}") from e

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        if not 200 <= status_code < 300:
            logger.info(f"non-2xx response kept; status: {status_code}; url: {url}")
        logger.debug(f"fetched {url} in {elapsed_ms}ms; status: {status_code}")

        body = b"".join(chunks)
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            return body.decode("utf-8", errors="replace")

    def _timeout_error(self) -> FetchError:
        return FetchError(FetchErrorKind.TIMEOUT, f"Request timed out after {self.timeout}s")

    @staticmethod
    def _abort_read(response, expired: threading.Event) -> None:
        # unblocks a read in progress on the worker thread
        expired.set()
        try:
            response.raw.shutdown()
        except (ValueError, RuntimeError) as e:
            logger.debug(f"connection already released at deadline: {e}")
