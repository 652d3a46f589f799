"""Tests for fetching release notes from a web page over a mocked transport."""

import httpx
import pytest

from app.core.config import get_settings
from app.core.errors import AnalysisInputError, UpstreamUnavailableError
from app.services.page_fetcher import PageFetcher, validate_url

PARAGRAPH = "The scheduler now supports recurring PDF exports for every dashboard. "


def _fetcher(handler, **kwargs):
    return PageFetcher(transport=httpx.MockTransport(handler), **kwargs)


def _page(body):
    return f"<html><head><title>Releases</title></head><body>{body}</body></html>"


@pytest.mark.parametrize(
    "url", ["", "   ", "example.com/notes", "ftp://example.com/notes", "https://"]
)
def test_validate_url_rejects(url):
    with pytest.raises(AnalysisInputError):
        validate_url(url)


def test_validate_url_strips_whitespace():
    assert validate_url("  https://example.com/notes ") == "https://example.com/notes"


@pytest.mark.asyncio
async def test_fetch_extracts_text_and_sends_headers():
    seen = {}

    def handler(request):
        seen["accept"] = request.headers["accept"]
        return httpx.Response(200, text=_page(f"<script>x()</script><p>{PARAGRAPH * 3}</p>"))

    page = await _fetcher(handler).fetch("https://example.com/notes")

    assert page.content == ("Releases " + PARAGRAPH * 3).strip()
    assert page.char_count == len(page.content)
    assert page.original_length == len(page.content)
    assert page.source == "https://example.com/notes"
    assert seen["accept"].startswith("text/html")


@pytest.mark.asyncio
async def test_content_is_capped():
    def handler(request):
        return httpx.Response(200, text=_page(f"<p>{PARAGRAPH * 10}</p>"))

    page = await _fetcher(handler, max_chars=150).fetch("https://example.com/notes")

    assert page.char_count == 150
    assert len(page.content) == 150
    assert page.original_length > 150


@pytest.mark.asyncio
async def test_too_little_text_is_rejected():
    def handler(request):
        return httpx.Response(200, text=_page("<script>" + "x" * 500 + "</script><p>Short.</p>"))

    with pytest.raises(AnalysisInputError, match="No readable content"):
        await _fetcher(handler).fetch("https://example.com/notes")


@pytest.mark.asyncio
async def test_http_error_status_is_input_error():
    def handler(request):
        return httpx.Response(403)

    with pytest.raises(AnalysisInputError, match="HTTP 403"):
        await _fetcher(handler).fetch("https://example.com/notes")


@pytest.mark.asyncio
async def test_timeout_is_upstream_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamUnavailableError, match="timed out"):
        await _fetcher(handler).fetch("https://example.com/notes")


@pytest.mark.asyncio
async def test_connection_error_is_upstream_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailableError):
        await _fetcher(handler).fetch("https://example.com/notes")


def test_from_settings(monkeypatch):
    monkeypatch.setenv("FETCH_URL_MAX_CHARS", "5000")
    monkeypatch.setenv("FETCH_URL_MIN_CHARS", "50")
    get_settings.cache_clear()

    fetcher = PageFetcher.from_settings()

    assert fetcher.max_chars == 5000
    assert fetcher.min_chars == 50
