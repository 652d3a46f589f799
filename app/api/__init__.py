"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import analysis, articles, drafting

router = APIRouter()

# Release notes analysis, gap detection and URL import
router.include_router(analysis.router, tags=["analysis"])

# Help center articles
router.include_router(articles.router, tags=["articles"])

# Impact analysis, update drafting, translation
router.include_router(drafting.router, tags=["drafting"])
