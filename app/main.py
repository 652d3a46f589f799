"""FastAPI application entry point."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.errors import (
    AnalysisInputError,
    ArticleNotFoundError,
    ProviderError,
    RateLimitError,
    UpstreamUnavailableError,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Docs Gap Engine",
    description="Matches release notes against help center articles and flags documentation gaps",
    version="0.1.0",
)


def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        content={"success": False, "error": message},
        status_code=status_code,
        headers=headers,
    )


@app.exception_handler(AnalysisInputError)
async def input_error_handler(request: Request, exc: AnalysisInputError) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(ArticleNotFoundError)
async def not_found_handler(request: Request, exc: ArticleNotFoundError) -> JSONResponse:
    return _error(404, str(exc))


@app.exception_handler(UpstreamUnavailableError)
async def upstream_error_handler(request: Request, exc: UpstreamUnavailableError) -> JSONResponse:
    logger.warning(f"Upstream unavailable on {request.url.path}: {exc}")
    return _error(503, f"Upstream data temporarily unavailable: {exc}")


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    return _error(
        429,
        f"{exc.provider} rate limited. Try again in {exc.retry_after} seconds.",
        headers={"Retry-After": str(exc.retry_after)},
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    logger.error(f"Provider error on {request.url.path}: {exc}")
    return _error(503, f"Upstream data temporarily unavailable: {exc.args[0]}")


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
