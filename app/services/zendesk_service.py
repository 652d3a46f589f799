"""Zendesk Help Center service: the article corpus for release-notes analysis.

Uses httpx for async HTTP requests. Article bodies arrive as HTML and are
converted to plain text before they reach the scoring pipeline.
"""

from __future__ import annotations

import math
import re

import httpx
from bs4 import BeautifulSoup

from app.core.cache import TTLCache, article_cache
from app.core.config import get_settings
from app.core.errors import ArticleNotFoundError, UpstreamUnavailableError
from app.core.logging import get_logger
from app.core.schemas_analysis import ArticlePage, Document

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NON_CONTENT_TAGS = ("script", "style", "noscript")


def html_to_text(html: str | None) -> str:
    """Plain text from HTML, without script or style content, whitespace collapsed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    text = soup.get_text(" ")
    return _WHITESPACE.sub(" ", text).strip()


class ZendeskService:
    """Read-only client for Help Center articles."""

    def __init__(
        self,
        subdomain: str,
        email: str,
        api_key: str,
        locale: str = "en-us",
        timeout: float = 8.0,
        per_page: int = 100,
        cache: TTLCache | None = article_cache,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.subdomain = subdomain
        self.locale = locale
        self.timeout = timeout
        self.per_page = per_page
        self.cache = cache
        self.base_url = f"https://{subdomain}.zendesk.com/api/v2/help_center"
        self._auth = httpx.BasicAuth(f"{email}/token", api_key)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=self._auth,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )

    async def _get(self, path: str, params: dict | None = None) -> httpx.Response:
        try:
            async with self._client() as client:
                resp = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"Zendesk request timed out: {path}")
            raise UpstreamUnavailableError("Zendesk request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Zendesk request failed: {path}: {e}")
            raise UpstreamUnavailableError(f"Zendesk request failed: {e}") from e

        if resp.status_code == 401:
            raise UpstreamUnavailableError("Zendesk authentication failed. Check API credentials.")
        return resp

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code >= 400:
            logger.error(f"Zendesk API error: {resp.status_code} {resp.reason_phrase}")
            raise UpstreamUnavailableError(f"Zendesk API error: {resp.status_code}")

    def _to_document(self, raw: dict) -> Document:
        section = raw.get("section_id")
        return Document(
            id=str(raw["id"]),
            title=raw.get("title") or "",
            body=html_to_text(raw.get("body")),
            category=f"section_{section}" if section is not None else None,
            updated_at=raw.get("updated_at"),
            url=raw.get("html_url"),
        )

    async def get_article(self, article_id: str) -> Document:
        """Fetch a single article by id."""
        resp = await self._get(f"/articles/{article_id}.json")
        if resp.status_code == 404:
            raise ArticleNotFoundError(article_id)
        self._raise_for_status(resp)
        return self._to_document(resp.json()["article"])

    async def get_all_articles(self, page: int = 1, per_page: int | None = None) -> ArticlePage:
        """Fetch one page of articles."""
        per_page = per_page or self.per_page
        resp = await self._get(
            f"/{self.locale}/articles.json", params={"page": page, "per_page": per_page}
        )
        self._raise_for_status(resp)
        data = resp.json()

        total = int(data.get("count", 0))
        return ArticlePage(
            articles=[self._to_document(a) for a in data.get("articles", [])],
            total=total,
            pages=math.ceil(total / per_page) if per_page else 0,
        )

    async def search_articles(self, query: str) -> list[Document]:
        """Full-text search in the help center."""
        resp = await self._get("/articles/search.json", params={"query": query})
        self._raise_for_status(resp)
        return [self._to_document(a) for a in resp.json().get("results", [])]

    async def get_article_count(self) -> int:
        resp = await self._get(f"/{self.locale}/articles.json", params={"per_page": 1})
        self._raise_for_status(resp)
        return int(resp.json().get("count", 0))

    async def fetch_corpus(self, max_articles: int | None = None) -> list[Document]:
        """
        Walk listing pages until max_articles or the last page.

        The result is cached for ARTICLE_CACHE_TTL_SECONDS.
        """
        max_articles = max_articles or get_settings().MAX_CORPUS_DOCUMENTS
        cache_key = f"corpus:{self.subdomain}:{self.locale}:{max_articles}"

        async def _walk() -> list[Document]:
            documents: list[Document] = []
            page = 1
            while len(documents) < max_articles:
                result = await self.get_all_articles(page=page)
                documents.extend(result.articles)
                if page >= result.pages or not result.articles:
                    break
                page += 1
            logger.info(f"Fetched {len(documents[:max_articles])} articles from Zendesk")
            return documents[:max_articles]

        if self.cache is None:
            return await _walk()
        return await self.cache.get_or_compute_async(cache_key, _walk)


_service: ZendeskService | None = None


def get_zendesk_service() -> ZendeskService:
    """
    Get the process-wide Zendesk service.

    Raises:
        UpstreamUnavailableError: If Zendesk credentials are not configured
    """
    global _service
    if _service is None:
        settings = get_settings()
        if not (settings.ZENDESK_SUBDOMAIN and settings.ZENDESK_EMAIL and settings.ZENDESK_API_KEY):
            raise UpstreamUnavailableError(
                "Zendesk credentials not configured. "
                "Set ZENDESK_SUBDOMAIN, ZENDESK_EMAIL, and ZENDESK_API_KEY"
            )
        _service = ZendeskService(
            subdomain=settings.ZENDESK_SUBDOMAIN,
            email=settings.ZENDESK_EMAIL,
            api_key=settings.ZENDESK_API_KEY,
            locale=settings.ZENDESK_LOCALE,
            timeout=settings.ZENDESK_TIMEOUT_SECONDS,
            per_page=settings.ZENDESK_PER_PAGE,
        )
    return _service


def reset_zendesk_service() -> None:
    global _service
    _service = None
