from __future__ import annotations

import logging
import time
from typing import Callable
from urllib.parse import urlsplit

import requests

from ..config import SETTINGS
from ..errors import SourceError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]

CHUNK_SIZE = 64 * 1024


class SourceFetcher:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        *,
        timeout: float = SETTINGS.timeout,
        retries: int = SETTINGS.retries,
        backoff: float = 0.4,
        max_bytes: int = SETTINGS.max_upload_mb * 1024 * 1024,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()
        self._timeout = timeout
        self._retries = retries
        self._backoff = backoff
        self._max_bytes = max_bytes

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": "dither-studio/1.0"})
        return session

    def fetch_source(self, url: str) -> bytes:
        parts = urlsplit(url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise SourceError(f"Unsupported source URL: {url}")

        last_exception: Exception | None = None
        for attempt in range(1, self._retries + 2):
            try:
                response = self._session.get(url, timeout=self._timeout, stream=True)
                try:
                    response.raise_for_status()
                    return self._read_limited(url, response)
                finally:
                    response.close()
            except requests.RequestException as exc:
                last_exception = exc
                logger.warning("Fetching %s failed (attempt %d): %s", url, attempt, exc)
                if attempt <= self._retries:
                    time.sleep(self._backoff * attempt)
        raise SourceError(f"Could not fetch {url}: {last_exception}") from last_exception

    def _read_limited(self, url: str, response: requests.Response) -> bytes:
        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > self._max_bytes:
            raise SourceError(f"Source {url} is larger than {self._max_bytes} bytes")

        body = bytearray()
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > self._max_bytes:
                raise SourceError(f"Source {url} is larger than {self._max_bytes} bytes")
        return bytes(body)


FETCHER = SourceFetcher()
