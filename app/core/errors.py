"""Error taxonomy shared by the analysis pipeline, providers and API layer."""


class AnalysisInputError(ValueError):
    """Caller supplied no usable input (e.g. empty release notes)."""


class UpstreamUnavailableError(Exception):
    """A collaborator needed to produce any result is unreachable."""


class ArticleNotFoundError(LookupError):
    """Requested help-center article does not exist."""

    def __init__(self, article_id: str):
        self.article_id = article_id
        super().__init__(f"Article not found: {article_id}")


class ProviderError(Exception):
    """Failure raised by an embedding or generative provider."""

    def __init__(self, provider: str, code: str, message: str):
        self.provider = provider
        self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.provider}:{self.code}] {self.args[0]}"


class RateLimitError(ProviderError):
    """Provider rejected the call because of rate limiting."""

    def __init__(self, provider: str, retry_after: int = 30):
        self.retry_after = retry_after
        super().__init__(provider, "RATE_LIMIT", f"Rate limited. Retry after {retry_after}s")
