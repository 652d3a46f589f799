"""Pull release notes from a public web page.

The page is fetched with httpx, reduced to readable text (scripts and styles
removed) and capped, so it can be fed straight into /v1/analysis.
"""

from urllib.parse import urlparse

import httpx

from app.core.config import get_settings
from app.core.errors import AnalysisInputError, UpstreamUnavailableError
from app.core.logging import get_logger
from app.core.schemas_analysis import FetchedPage
from app.services.zendesk_service import html_to_text

logger = get_logger(__name__)

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; DocsGapEngine/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Cache-Control": "no-cache",
}


def validate_url(url: str) -> str:
    """
    Check that url is an absolute http(s) URL.

    Raises:
        AnalysisInputError: If the URL is missing or malformed
    """
    url = (url or "").strip()
    if not url:
        raise AnalysisInputError("Valid URL required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise AnalysisInputError("Invalid URL format")
    return url


class PageFetcher:
    """Fetches a page and returns its readable text."""

    def __init__(
        self,
        timeout: float = 10.0,
        min_chars: int = 100,
        max_chars: int = 10_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.min_chars = min_chars
        self.max_chars = max_chars
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "PageFetcher":
        settings = get_settings()
        return cls(
            timeout=settings.FETCH_URL_TIMEOUT_SECONDS,
            min_chars=settings.FETCH_URL_MIN_CHARS,
            max_chars=settings.FETCH_URL_MAX_CHARS,
        )

    async def fetch(self, url: str) -> FetchedPage:
        """
        Fetch url and extract its text.

        Returns:
            FetchedPage with at most max_chars characters of content

        Raises:
            AnalysisInputError: Invalid URL, non-2xx response, or too little text
            UpstreamUnavailableError: Network failure or timeout
        """
        url = validate_url(url)
        logger.info(f"Fetching release notes page: {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=_HEADERS,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(url)
        except httpx.TimeoutException as e:
            logger.error(f"Page fetch timed out: {url}")
            raise UpstreamUnavailableError("Page fetch timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Page fetch failed: {url}: {e}")
            raise UpstreamUnavailableError(f"Page fetch failed: {e}") from e

        if resp.status_code >= 400:
            logger.warning(f"Page fetch returned {resp.status_code}: {url}")
            raise AnalysisInputError(f"Failed to fetch URL: HTTP {resp.status_code}")

        text = html_to_text(resp.text)
        if len(text) < self.min_chars:
            logger.warning(
                f"Too little readable text at {url}",
                extra={"html_chars": len(resp.text), "text_chars": len(text)},
            )
            raise AnalysisInputError(
                "No readable content found at URL. Try a different URL or paste the text manually."
            )

        content = text[: self.max_chars]
        return FetchedPage(
            content=content,
            char_count=len(content),
            source=url,
            original_length=len(text),
        )
