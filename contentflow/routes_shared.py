"""Per-request wiring: one store per session, services built on top of it.

Long-lived collaborators (settings, the LLM client, the database) are
created once in ``create_app`` and read from ``app.state`` here.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .services.content import ArticleService, ResearchService
from .services.ledger import GenerationLedger
from .services.niches import NicheService
from .services.outlines import OutlineService
from .services.pillars import PillarService
from .services.steps import WorkflowSettingsService
from .services.subpillars import SubpillarService
from .services.workflow import GenerationWorkflow
from .store import SqlEntityStore


def get_store(db: AsyncSession = Depends(get_db)) -> SqlEntityStore:
    return SqlEntityStore(db)


def get_ledger(request: Request, store: SqlEntityStore = Depends(get_store)) -> GenerationLedger:
    settings = request.app.state.settings
    return GenerationLedger(
        store,
        default_llm_id=settings.OLLAMA_MODEL,
        default_temperature=settings.DEFAULT_TEMPERATURE,
        default_max_tokens=settings.DEFAULT_MAX_TOKENS,
    )


def get_settings_service(store: SqlEntityStore = Depends(get_store)) -> WorkflowSettingsService:
    return WorkflowSettingsService(store)


def get_workflow(
    request: Request,
    store: SqlEntityStore = Depends(get_store),
    ledger: GenerationLedger = Depends(get_ledger),
    steps: WorkflowSettingsService = Depends(get_settings_service),
) -> GenerationWorkflow:
    settings = request.app.state.settings
    return GenerationWorkflow(
        store,
        request.app.state.llm_client,
        ledger,
        steps=steps,
        pillar_count=settings.PILLAR_COUNT,
        subpillar_count=settings.SUBPILLAR_COUNT,
    )


def get_niche_service(store: SqlEntityStore = Depends(get_store)) -> NicheService:
    return NicheService(store)


def get_pillar_service(store: SqlEntityStore = Depends(get_store)) -> PillarService:
    return PillarService(store)


def get_subpillar_service(store: SqlEntityStore = Depends(get_store)) -> SubpillarService:
    return SubpillarService(store)


def get_outline_service(store: SqlEntityStore = Depends(get_store)) -> OutlineService:
    return OutlineService(store)


def get_research_service(store: SqlEntityStore = Depends(get_store)) -> ResearchService:
    return ResearchService(store)


def get_article_service(store: SqlEntityStore = Depends(get_store)) -> ArticleService:
    return ArticleService(store)


__all__ = [
    "get_store",
    "get_ledger",
    "get_settings_service",
    "get_workflow",
    "get_niche_service",
    "get_pillar_service",
    "get_subpillar_service",
    "get_outline_service",
    "get_research_service",
    "get_article_service",
]
