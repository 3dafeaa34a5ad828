from fastapi import APIRouter, Depends, status

from ..routes_shared import get_article_service, get_research_service
from ..schemas import (
    ArticleCreate,
    ArticleRead,
    ArticleSEOUpdate,
    ArticleUpdate,
    DataResponse,
    ResearchCreate,
    ResearchRead,
    ResearchUpdate,
)
from ..services.content import ArticleService, ResearchService
from ..utils import require_authenticated_user

router = APIRouter(tags=["content"])


# -------------------------
# Research
# -------------------------
@router.post("/subpillars/{subpillar_id}/research", status_code=status.HTTP_201_CREATED, response_model=DataResponse[ResearchRead])
async def create_research(
    subpillar_id: str,
    payload: ResearchCreate,
    user_id: str = Depends(require_authenticated_user),
    research: ResearchService = Depends(get_research_service),
):
    item = await research.create(subpillar_id, user_id, **payload.model_dump())
    return {"data": ResearchRead.model_validate(item)}


@router.get("/subpillars/{subpillar_id}/research", response_model=DataResponse[list[ResearchRead]])
async def list_research(
    subpillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    research: ResearchService = Depends(get_research_service),
):
    rows = await research.list_by_subpillar(subpillar_id)
    return {"data": [ResearchRead.model_validate(r) for r in rows]}


@router.get("/research/{research_id}", response_model=DataResponse[ResearchRead])
async def get_research(
    research_id: str,
    user_id: str = Depends(require_authenticated_user),
    research: ResearchService = Depends(get_research_service),
):
    return {"data": ResearchRead.model_validate(await research.get(research_id))}


@router.put("/research/{research_id}", response_model=DataResponse[ResearchRead])
async def update_research(
    research_id: str,
    payload: ResearchUpdate,
    user_id: str = Depends(require_authenticated_user),
    research: ResearchService = Depends(get_research_service),
):
    item = await research.update(research_id, user_id, **payload.model_dump(exclude_unset=True))
    return {"data": ResearchRead.model_validate(item)}


@router.delete("/research/{research_id}")
async def delete_research(
    research_id: str,
    user_id: str = Depends(require_authenticated_user),
    research: ResearchService = Depends(get_research_service),
):
    await research.delete(research_id, user_id)
    return {"data": {"id": research_id, "deleted": True}}


# -------------------------
# Articles
# -------------------------
@router.post("/subpillars/{subpillar_id}/articles", status_code=status.HTTP_201_CREATED, response_model=DataResponse[ArticleRead])
async def create_article(
    subpillar_id: str,
    payload: ArticleCreate,
    user_id: str = Depends(require_authenticated_user),
    articles: ArticleService = Depends(get_article_service),
):
    article = await articles.create(subpillar_id, user_id, **payload.model_dump())
    return {"data": ArticleRead.model_validate(article)}


@router.get("/subpillars/{subpillar_id}/articles", response_model=DataResponse[list[ArticleRead]])
async def list_articles(
    subpillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    articles: ArticleService = Depends(get_article_service),
):
    rows = await articles.list_by_subpillar(subpillar_id)
    return {"data": [ArticleRead.model_validate(a) for a in rows]}


@router.get("/articles/{article_id}", response_model=DataResponse[ArticleRead])
async def get_article(
    article_id: str,
    user_id: str = Depends(require_authenticated_user),
    articles: ArticleService = Depends(get_article_service),
):
    return {"data": ArticleRead.model_validate(await articles.get(article_id))}


@router.put("/articles/{article_id}", response_model=DataResponse[ArticleRead])
async def update_article(
    article_id: str,
    payload: ArticleUpdate,
    user_id: str = Depends(require_authenticated_user),
    articles: ArticleService = Depends(get_article_service),
):
    article = await articles.update(article_id, user_id, **payload.model_dump(exclude_unset=True))
    return {"data": ArticleRead.model_validate(article)}


@router.put("/articles/{article_id}/seo", response_model=DataResponse[ArticleRead])
async def update_article_seo(
    article_id: str,
    payload: ArticleSEOUpdate,
    user_id: str = Depends(require_authenticated_user),
    articles: ArticleService = Depends(get_article_service),
):
    article = await articles.update_seo(article_id, user_id, **payload.model_dump(exclude_unset=True))
    return {"data": ArticleRead.model_validate(article)}


@router.delete("/articles/{article_id}")
async def delete_article(
    article_id: str,
    user_id: str = Depends(require_authenticated_user),
    articles: ArticleService = Depends(get_article_service),
):
    await articles.delete(article_id, user_id)
    return {"data": {"id": article_id, "deleted": True}}
