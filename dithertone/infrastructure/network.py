from __future__ import annotations

import io
import logging
import time
from typing import Callable
from urllib.parse import urlsplit

import requests
from PIL import Image

from ..config import SETTINGS


SessionFactory = Callable[[], requests.Session]

log = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """The source image could not be fetched or decoded."""


def _validate_source_url(url: str) -> str:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Invalid source_url: {url!r}")
    return url


class SourceFetcher:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        retries: int | None = None,
        backoff: float = 0.4,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()
        self._retries = SETTINGS.retries if retries is None else retries
        self._backoff = backoff

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": "dithertone/1.0"})
        return session

    def fetch_source(self, source_url: str | None = None) -> Image.Image:
        target_url = source_url or SETTINGS.source_url
        if not target_url:
            raise ValueError("No source_url given and SOURCE_URL is not set")
        _validate_source_url(target_url)

        last_exception: Exception | None = None
        for attempt in range(1, self._retries + 2):
            try:
                response = self._session.get(target_url, timeout=SETTINGS.timeout)
                response.raise_for_status()
                img = Image.open(io.BytesIO(response.content))
                return img.convert("RGBA")
            except Exception as exc:  # pragma: no cover - network failures handled at runtime
                last_exception = exc
                log.warning("Fetching %s failed (attempt %d): %s", target_url, attempt, exc)
                time.sleep(self._backoff * attempt)
        raise SourceError(f"Could not fetch {target_url}: {last_exception}")


FETCHER = SourceFetcher()
