"""Tests for the source fetcher."""

import io

import pytest

pytest.importorskip("requests")

from PIL import Image

from dithertone.infrastructure.network import SourceError, SourceFetcher


class FakeResponse:
    def __init__(self, content: bytes, status: int = 200) -> None:
        self.content = content
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise RuntimeError(f"HTTP {self.status}")


class FakeSession:
    def __init__(self, responses) -> None:
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout):
        self.calls.append(url)
        return self.responses.pop(0)


def _png(color=(10, 200, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (3, 2), color).save(buffer, "PNG")
    return buffer.getvalue()


def test_fetch_source_decodes_to_rgba():
    session = FakeSession([FakeResponse(_png())])
    fetcher = SourceFetcher(session_factory=lambda: session, retries=0)

    img = fetcher.fetch_source("http://example.com/photo.png")

    assert img.mode == "RGBA"
    assert img.size == (3, 2)
    assert session.headers["User-Agent"].startswith("dithertone/")
    assert session.calls == ["http://example.com/photo.png"]


def test_fetch_source_retries_then_succeeds():
    session = FakeSession([FakeResponse(b"", status=503), FakeResponse(_png())])
    fetcher = SourceFetcher(session_factory=lambda: session, retries=1, backoff=0)

    assert fetcher.fetch_source("http://example.com/photo.png").size == (3, 2)
    assert len(session.calls) == 2


def test_fetch_source_gives_up_with_source_error():
    session = FakeSession([FakeResponse(b"not an image"), FakeResponse(b"", status=500)])
    fetcher = SourceFetcher(session_factory=lambda: session, retries=1, backoff=0)

    with pytest.raises(SourceError):
        fetcher.fetch_source("http://example.com/photo.png")


@pytest.mark.parametrize("url", ["ftp://example.com/a.png", "not-a-url", "http:///a.png"])
def test_fetch_source_rejects_invalid_urls(url):
    fetcher = SourceFetcher(session_factory=lambda: FakeSession([]), retries=0)

    with pytest.raises(ValueError):
        fetcher.fetch_source(url)
