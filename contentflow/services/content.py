# services/content.py
import logging
from typing import Any

from contentflow.errors import NotFoundError, ValidationError
from contentflow.models import Article, Research
from contentflow.services.ownership import assert_owner
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)


def _changes(**fields: Any) -> dict:
    return {k: v for k, v in fields.items() if v is not None}


class _SubpillarChildService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def _require_subpillar(self, subpillar_id: str) -> None:
        if await self.store.find_subpillar(subpillar_id) is None:
            raise NotFoundError("Subpillar not found")


class ResearchService(_SubpillarChildService):
    async def create(self, subpillar_id: str, user_id: str, *, content: str, source: str,
                     relevance: float = 0.0, notes=None, article_id=None) -> Research:
        await self._require_subpillar(subpillar_id)
        if article_id is not None:
            await self._require_article(article_id)
        logger.info("Adding research to subpillar %s by user %s", subpillar_id, user_id)
        return await self.store.create_research(
            subpillar_id=subpillar_id,
            created_by_id=user_id,
            content=content,
            source=source,
            relevance=relevance,
            notes=notes,
            article_id=article_id,
        )

    async def _require_article(self, article_id: str) -> None:
        if await self.store.find_article(article_id) is None:
            raise ValidationError("Linked article does not exist")

    async def list_by_subpillar(self, subpillar_id: str) -> list[Research]:
        await self._require_subpillar(subpillar_id)
        return await self.store.find_research_by_subpillar(subpillar_id)

    async def get(self, research_id: str) -> Research:
        research = await self.store.find_research(research_id)
        if research is None:
            raise NotFoundError("Research not found")
        return research

    async def update(self, research_id: str, user_id: str, **fields: Any) -> Research:
        research = await self.get(research_id)
        assert_owner(research, user_id)
        changes = _changes(**fields)
        if changes.get("article_id"):
            await self._require_article(changes["article_id"])
        if not changes:
            return research
        return await self.store.update_research(research_id, **changes)

    async def delete(self, research_id: str, user_id: str) -> bool:
        research = await self.get(research_id)
        assert_owner(research, user_id, action="delete")
        logger.info("Deleting research %s", research_id)
        return await self.store.delete_research(research_id)


class ArticleService(_SubpillarChildService):
    async def create(self, subpillar_id: str, user_id: str, *, title: str, content: str = "",
                     status=None, keywords=None, meta_description=None) -> Article:
        await self._require_subpillar(subpillar_id)
        logger.info("Creating article %r under subpillar %s", title, subpillar_id)
        return await self.store.create_article(
            subpillar_id=subpillar_id,
            author_id=user_id,
            title=title.strip(),
            content=content or "",
            keywords=list(keywords or []),
            meta_description=meta_description,
            **_changes(status=status),
        )

    async def list_by_subpillar(self, subpillar_id: str) -> list[Article]:
        await self._require_subpillar(subpillar_id)
        return await self.store.find_articles_by_subpillar(subpillar_id)

    async def get(self, article_id: str) -> Article:
        article = await self.store.find_article(article_id)
        if article is None:
            raise NotFoundError("Article not found")
        return article

    async def update(self, article_id: str, user_id: str, **fields: Any) -> Article:
        article = await self.get(article_id)
        assert_owner(article, user_id, field="author_id")
        changes = _changes(**fields)
        if not changes:
            return article
        logger.info("Updating article %s", article_id)
        return await self.store.update_article(article_id, **changes)

    async def update_seo(self, article_id: str, user_id: str, *, seo_score=None,
                         keywords=None, meta_description=None) -> Article:
        article = await self.get(article_id)
        assert_owner(article, user_id, field="author_id")
        changes = _changes(seo_score=seo_score, meta_description=meta_description)
        if keywords is not None:
            # dedupe, keep first-seen order
            changes["keywords"] = list(dict.fromkeys(k.strip() for k in keywords if k.strip()))
        if not changes:
            return article
        logger.info("Updating SEO fields of article %s", article_id)
        return await self.store.update_article(article_id, **changes)

    async def delete(self, article_id: str, user_id: str) -> bool:
        article = await self.get(article_id)
        assert_owner(article, user_id, field="author_id", action="delete")
        logger.info("Deleting article %s", article_id)
        return await self.store.delete_article(article_id)
