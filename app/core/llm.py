"""Generative LLM providers, response parsing and a process-wide factory.

Structured responses are returned as a tagged ParsedResponse: either a
ParseSuccess wrapping a validated pydantic model, or a ParseFailure carrying
the raw text. Callers never see partially filled dicts.
"""

import json
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar, Generic, Protocol, TypeVar, Union

import anthropic
import httpx
from pydantic import BaseModel, ValidationError

from app.core.config import get_settings
from app.core.errors import ProviderError, RateLimitError
from app.core.logging import get_logger
from app.core.prompts import (
    ARTICLE_CONTEXT_BLOCK,
    ARTICLE_USER,
    DOCS_SYSTEM_PROMPT,
    EXTRACT_USER,
    IMPACT_USER,
    SUGGEST_GAPS_USER,
    TRANSLATE_USER,
    UPDATE_USER,
)
from app.core.schemas_analysis import GapSuggestions, ImpactAnalysis, ReleaseNotesExtraction

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)
V = TypeVar("V")


# =============================================================================
# Response parsing
# =============================================================================


@dataclass(frozen=True)
class ParseSuccess(Generic[V]):
    value: V
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class ParseFailure:
    raw_text: str
    error: str
    ok: ClassVar[bool] = False


ParsedResponse = Union[ParseSuccess[V], ParseFailure]


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Fallback: strip leading/trailing fences without regex
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON and validate against a Pydantic model.

    Handles common LLM response quirks:
    - Markdown code fences (```json ... ```)
    - Leading/trailing whitespace
    - Prose around a single JSON object or array

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    cleaned = _strip_llm_fences(raw_output)
    if not cleaned.startswith(("{", "[")):
        object_match = re.search(r"\{.*\}", cleaned, re.DOTALL) or re.search(
            r"\[.*\]", cleaned, re.DOTALL
        )
        if object_match:
            cleaned = object_match.group(0)
    parsed = json.loads(cleaned)
    return model.model_validate(parsed)


def parse_llm_response(raw_output: str, model: type[T]) -> ParsedResponse[T]:
    """Like parse_llm_json, but returns a ParseFailure instead of raising."""
    try:
        return ParseSuccess(parse_llm_json(raw_output, model))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Could not parse {model.__name__} from LLM output: {e}")
        return ParseFailure(raw_text=raw_output, error=str(e))


# =============================================================================
# Providers
# =============================================================================


def _retry_after(headers, default: int = 30) -> int:
    try:
        return int(headers.get("retry-after", default))
    except (TypeError, ValueError):
        return default


class GenerativeProvider(Protocol):
    name: str

    async def analyze_impact(self, notes: str, article: str) -> ParsedResponse[ImpactAnalysis]: ...

    async def generate_update(self, notes: str, article: str) -> str: ...

    async def translate_text(self, text: str, target_language: str) -> str: ...

    async def extract_release_notes(self, notes: str) -> ParsedResponse[ReleaseNotesExtraction]: ...

    async def generate_article(self, topic: str, context: str = "") -> str: ...

    async def suggest_gaps(
        self, notes: str, existing_titles: Sequence[str]
    ) -> ParsedResponse[list[str]]: ...


class _PromptingProvider(ABC):
    """Shared prompt construction; subclasses implement _complete()."""

    name = "base"

    @abstractmethod
    async def _complete(self, system: str | None, user: str, max_tokens: int) -> str:
        """Send one prompt to the backend and return the text reply."""

    async def analyze_impact(self, notes: str, article: str) -> ParsedResponse[ImpactAnalysis]:
        text = await self._complete(
            DOCS_SYSTEM_PROMPT, IMPACT_USER.format(notes=notes, article=article), 1024
        )
        return parse_llm_response(text, ImpactAnalysis)

    async def generate_update(self, notes: str, article: str) -> str:
        return await self._complete(
            DOCS_SYSTEM_PROMPT, UPDATE_USER.format(notes=notes, article=article), 2048
        )

    async def translate_text(self, text: str, target_language: str) -> str:
        return await self._complete(
            None, TRANSLATE_USER.format(language=target_language, text=text), 4096
        )

    async def extract_release_notes(self, notes: str) -> ParsedResponse[ReleaseNotesExtraction]:
        text = await self._complete(DOCS_SYSTEM_PROMPT, EXTRACT_USER.format(notes=notes), 1024)
        return parse_llm_response(text, ReleaseNotesExtraction)

    async def generate_article(self, topic: str, context: str = "") -> str:
        context_block = ARTICLE_CONTEXT_BLOCK.format(context=context) if context else ""
        return await self._complete(
            DOCS_SYSTEM_PROMPT,
            ARTICLE_USER.format(topic=topic, context_block=context_block),
            2500,
        )

    async def suggest_gaps(
        self, notes: str, existing_titles: Sequence[str]
    ) -> ParsedResponse[list[str]]:
        existing = ", ".join(t for t in existing_titles if t) or "None yet"
        text = await self._complete(
            None, SUGGEST_GAPS_USER.format(notes=notes, existing=existing), 500
        )
        parsed = parse_llm_response(text, GapSuggestions)
        if isinstance(parsed, ParseSuccess):
            return ParseSuccess(parsed.value.root)
        return parsed


class ClaudeProvider(_PromptingProvider):
    """Anthropic Claude backend."""

    name = "claude"

    def __init__(self, api_key: str, model: str, timeout: float = 9.0):
        self.model = model
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=1)

    async def _complete(self, system: str | None, user: str, max_tokens: int) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": user}],
        }
        if system:
            kwargs["system"] = [
                {"type": "text", "text": system, "cache_control": {"type": "ephemeral"}}
            ]

        try:
            start = time.time()
            response = await self.client.messages.create(**kwargs)
            duration_ms = int((time.time() - start) * 1000)
        except anthropic.RateLimitError as e:
            raise RateLimitError(self.name, _retry_after(e.response.headers)) from e
        except anthropic.APITimeoutError as e:
            raise ProviderError(self.name, "TIMEOUT", "Claude request timed out") from e
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            raise ProviderError(self.name, "API_ERROR", str(e)) from e

        usage = getattr(response, "usage", None)
        logger.info(
            f"Claude call complete in {duration_ms}ms",
            extra={
                "model": self.model,
                "tokens_input": getattr(usage, "input_tokens", 0),
                "tokens_output": getattr(usage, "output_tokens", 0),
            },
        )

        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        raise ProviderError(self.name, "EMPTY_RESPONSE", "No text content in response")


class PerplexityProvider(_PromptingProvider):
    """Perplexity chat-completions backend over httpx."""

    name = "perplexity"
    API_URL = "https://api.perplexity.ai/chat/completions"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 9.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.timeout = timeout
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def _complete(self, system: str | None, user: str, max_tokens: int) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.API_URL,
                    headers=self._headers,
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": 0.2,
                        "max_tokens": max_tokens,
                    },
                )
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, "TIMEOUT", "Perplexity request timed out") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, "NETWORK_ERROR", str(e)) from e

        if resp.status_code == 429:
            raise RateLimitError(self.name, _retry_after(resp.headers))
        if resp.status_code >= 400:
            logger.error(f"Perplexity API error {resp.status_code}: {resp.text[:200]}")
            raise ProviderError(self.name, "API_ERROR", f"Perplexity API error: {resp.status_code}")

        try:
            return resp.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, ValueError) as e:
            raise ProviderError(self.name, "BAD_RESPONSE", "Unexpected Perplexity response") from e


# =============================================================================
# Factory
# =============================================================================


_provider: GenerativeProvider | None = None


def _create_llm_provider() -> GenerativeProvider:
    settings = get_settings()
    name = settings.LLM_PROVIDER.lower()

    if name == "claude":
        if not settings.ANTHROPIC_API_KEY:
            raise ProviderError("factory", "INIT_ERROR", "ANTHROPIC_API_KEY not set")
        return ClaudeProvider(
            settings.ANTHROPIC_API_KEY, settings.CLAUDE_MODEL, settings.LLM_TIMEOUT_SECONDS
        )

    if name == "perplexity":
        if not settings.PERPLEXITY_API_KEY:
            raise ProviderError("factory", "INIT_ERROR", "PERPLEXITY_API_KEY not set")
        return PerplexityProvider(
            settings.PERPLEXITY_API_KEY, settings.PERPLEXITY_MODEL, settings.LLM_TIMEOUT_SECONDS
        )

    raise ProviderError("factory", "INIT_ERROR", f"Unknown LLM provider: {name}")


def get_llm_provider() -> GenerativeProvider:
    """
    Get the configured generative provider, created once per process.

    Raises:
        ProviderError: If the provider is unknown or its API key is missing
    """
    global _provider
    if _provider is None:
        _provider = _create_llm_provider()
        logger.info(f"Using LLM provider: {_provider.name}")
    return _provider


def reset_llm_provider() -> None:
    """Forget the cached provider so the next call re-reads settings."""
    global _provider
    _provider = None
