"""Help center article API endpoints."""

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_content_service
from app.core.schemas_analysis import ArticlePage, Document
from app.services.zendesk_service import ZendeskService

router = APIRouter()


@router.get("/articles", response_model=ArticlePage)
async def list_articles(
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(100, ge=1, le=100, description="Articles per page"),
    service: ZendeskService = Depends(get_content_service),
) -> ArticlePage:
    """List one page of help center articles."""
    return await service.get_all_articles(page=page, per_page=per_page)


@router.get("/articles/search", response_model=list[Document])
async def search_articles(
    query: str = Query(..., min_length=1, description="Search text"),
    service: ZendeskService = Depends(get_content_service),
) -> list[Document]:
    return await service.search_articles(query)


@router.get("/articles/{article_id}", response_model=Document)
async def get_article(
    article_id: str,
    service: ZendeskService = Depends(get_content_service),
) -> Document:
    return await service.get_article(article_id)
