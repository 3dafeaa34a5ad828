"""Persistence contract for the content tree and the generation ledger.

The workflow, ledger and editor services depend only on ``EntityStore``.
``SqlEntityStore`` is the async SQLAlchemy adapter used for both PostgreSQL
and SQLite.

Finders return ``None`` (or ``False`` for deletes) when the row does not
exist; any driver/database failure surfaces as ``StoreError``.
"""
from __future__ import annotations

import abc
import functools
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .errors import StoreError
from .models import (
    LLM,
    Article,
    ContentGeneration,
    Niche,
    Outline,
    OutlineSection,
    Pillar,
    Research,
    Subpillar,
    UserStepSettings,
    WorkflowStep,
    utcnow,
)

logger = logging.getLogger(__name__)


class EntityStore(abc.ABC):
    @abc.abstractmethod
    def transaction(self): ...

    # ---- niches ----
    @abc.abstractmethod
    async def create_niche(self, **fields: Any) -> Niche: ...

    @abc.abstractmethod
    async def find_niche(self, niche_id: str) -> Optional[Niche]: ...

    @abc.abstractmethod
    async def find_niches_by_user(self, user_id: str) -> list[Niche]: ...

    @abc.abstractmethod
    async def update_niche(self, niche_id: str, **fields: Any) -> Optional[Niche]: ...

    @abc.abstractmethod
    async def delete_niche(self, niche_id: str) -> bool: ...

    # ---- pillars ----
    @abc.abstractmethod
    async def create_pillars(self, rows: Sequence[dict]) -> list[Pillar]: ...

    @abc.abstractmethod
    async def find_pillar(self, pillar_id: str) -> Optional[Pillar]: ...

    @abc.abstractmethod
    async def find_pillars_by_niche(self, niche_id: str) -> list[Pillar]: ...

    @abc.abstractmethod
    async def update_pillar(self, pillar_id: str, **fields: Any) -> Optional[Pillar]: ...

    @abc.abstractmethod
    async def delete_pillar(self, pillar_id: str) -> bool: ...

    # ---- subpillars ----
    @abc.abstractmethod
    async def create_subpillars(self, rows: Sequence[dict]) -> list[Subpillar]: ...

    @abc.abstractmethod
    async def find_subpillar(self, subpillar_id: str) -> Optional[Subpillar]: ...

    @abc.abstractmethod
    async def find_subpillars_by_pillar(self, pillar_id: str) -> list[Subpillar]: ...

    @abc.abstractmethod
    async def update_subpillar(self, subpillar_id: str, **fields: Any) -> Optional[Subpillar]: ...

    @abc.abstractmethod
    async def delete_subpillar(self, subpillar_id: str) -> bool: ...

    # ---- outlines ----
    @abc.abstractmethod
    async def create_outline(self, *, subpillar_id: str, created_by_id: str, status: Any,
                             sections: Sequence[dict]) -> Outline: ...

    @abc.abstractmethod
    async def find_outline(self, outline_id: str) -> Optional[Outline]: ...

    @abc.abstractmethod
    async def find_outline_by_subpillar(self, subpillar_id: str) -> Optional[Outline]: ...

    @abc.abstractmethod
    async def update_outline(self, outline_id: str, *, status: Any = None,
                             sections: Optional[Sequence[dict]] = None) -> Optional[Outline]: ...

    @abc.abstractmethod
    async def delete_outline(self, outline_id: str) -> bool: ...

    # ---- research / articles ----
    @abc.abstractmethod
    async def create_research(self, **fields: Any) -> Research: ...

    @abc.abstractmethod
    async def find_research(self, research_id: str) -> Optional[Research]: ...

    @abc.abstractmethod
    async def find_research_by_subpillar(self, subpillar_id: str) -> list[Research]: ...

    @abc.abstractmethod
    async def update_research(self, research_id: str, **fields: Any) -> Optional[Research]: ...

    @abc.abstractmethod
    async def delete_research(self, research_id: str) -> bool: ...

    @abc.abstractmethod
    async def create_article(self, **fields: Any) -> Article: ...

    @abc.abstractmethod
    async def find_article(self, article_id: str) -> Optional[Article]: ...

    @abc.abstractmethod
    async def find_articles_by_subpillar(self, subpillar_id: str) -> list[Article]: ...

    @abc.abstractmethod
    async def update_article(self, article_id: str, **fields: Any) -> Optional[Article]: ...

    @abc.abstractmethod
    async def delete_article(self, article_id: str) -> bool: ...

    # ---- ledger ----
    @abc.abstractmethod
    async def create_generation(self, **fields: Any) -> ContentGeneration: ...

    @abc.abstractmethod
    async def find_generation(self, generation_id: str) -> Optional[tuple[ContentGeneration, Optional[LLM]]]: ...

    @abc.abstractmethod
    async def find_generations_by_content(self, content_id: str) -> list[tuple[ContentGeneration, Optional[LLM]]]: ...

    @abc.abstractmethod
    async def update_generation(self, generation_id: str, **fields: Any) -> Optional[ContentGeneration]: ...

    @abc.abstractmethod
    async def upsert_llm(self, llm_id: str, *, name: str, model_id: str, provider: str) -> LLM: ...

    @abc.abstractmethod
    async def find_llms(self, provider: Optional[str] = None) -> list[LLM]: ...

    @abc.abstractmethod
    async def find_llm(self, llm_id: str) -> Optional[LLM]: ...

    # ---- workflow steps / per-user settings ----
    @abc.abstractmethod
    async def ensure_workflow_step(self, key: str, **defaults: Any) -> WorkflowStep: ...

    @abc.abstractmethod
    async def find_workflow_steps(self) -> list[tuple[WorkflowStep, Optional[LLM]]]: ...

    @abc.abstractmethod
    async def find_workflow_step(self, step_id: int) -> Optional[WorkflowStep]: ...

    @abc.abstractmethod
    async def find_workflow_step_by_key(self, key: str) -> Optional[WorkflowStep]: ...

    @abc.abstractmethod
    async def find_user_step_settings(self, user_id: str) -> list[tuple[UserStepSettings, Optional[LLM]]]: ...

    @abc.abstractmethod
    async def find_user_step_setting(self, user_id: str, step_id: int) -> Optional[UserStepSettings]: ...

    @abc.abstractmethod
    async def upsert_user_step_settings(self, user_id: str, step_id: int, **fields: Any) -> UserStepSettings: ...

    @abc.abstractmethod
    async def delete_user_step_settings(self, user_id: str) -> int: ...


def _guarded(fn):
    """Translate SQLAlchemy failures into StoreError after rolling back."""

    @functools.wraps(fn)
    async def wrapper(self: "SqlEntityStore", *args, **kwargs):
        try:
            return await fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception("Store operation %s failed", fn.__name__)
            if not self._depth:
                await self.session.rollback()
            raise StoreError(f"{fn.__name__} failed: {exc}") from exc

    return wrapper


class SqlEntityStore(EntityStore):
    def __init__(self, session: AsyncSession):
        self.session = session
        self._depth = 0

    # -------------------------
    # Transactions
    # -------------------------
    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlEntityStore"]:
        """Group several store calls into one commit; any exception rolls back all of them."""
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if not self._depth:
                await self.session.rollback()
            raise
        self._depth -= 1
        if not self._depth:
            try:
                await self.session.commit()
            except SQLAlchemyError as exc:
                logger.exception("Transaction commit failed")
                await self.session.rollback()
                raise StoreError(f"commit failed: {exc}") from exc

    async def _save(self) -> None:
        if self._depth:
            await self.session.flush()
        else:
            await self.session.commit()

    async def _first(self, stmt):
        return (await self.session.execute(stmt)).scalars().first()

    async def _all(self, stmt) -> list:
        return list((await self.session.execute(stmt)).scalars().all())

    async def _update(self, model, row_id: str, fields: dict):
        obj = await self._first(select(model).where(model.id == row_id))
        if obj is None:
            return None
        for key, value in fields.items():
            setattr(obj, key, value)
        await self._save()
        return obj

    @staticmethod
    def _stamped(rows: Sequence[dict]) -> list[dict]:
        # strictly increasing created_at keeps batch order stable on read
        base = utcnow()
        return [{"created_at": base + timedelta(microseconds=i), **row} for i, row in enumerate(rows)]

    async def _delete_subpillar_tree(self, subpillar_ids) -> None:
        outline_ids = select(Outline.id).where(Outline.subpillar_id.in_(subpillar_ids))
        await self.session.execute(
            delete(OutlineSection).where(OutlineSection.outline_id.in_(outline_ids)).execution_options(synchronize_session="fetch")
        )
        for model in (Outline, Research, Article):
            await self.session.execute(
                delete(model).where(model.subpillar_id.in_(subpillar_ids)).execution_options(synchronize_session="fetch")
            )
        await self.session.execute(
            delete(Subpillar).where(Subpillar.id.in_(subpillar_ids)).execution_options(synchronize_session="fetch")
        )

    # -------------------------
    # Niches
    # -------------------------
    @_guarded
    async def create_niche(self, **fields: Any) -> Niche:
        niche = Niche(**fields)
        self.session.add(niche)
        await self._save()
        return niche

    @_guarded
    async def find_niche(self, niche_id: str) -> Optional[Niche]:
        return await self._first(select(Niche).where(Niche.id == niche_id))

    @_guarded
    async def find_niches_by_user(self, user_id: str) -> list[Niche]:
        return await self._all(
            select(Niche).where(Niche.user_id == user_id).order_by(Niche.created_at.desc())
        )

    @_guarded
    async def update_niche(self, niche_id: str, **fields: Any) -> Optional[Niche]:
        return await self._update(Niche, niche_id, fields)

    @_guarded
    async def delete_niche(self, niche_id: str) -> bool:
        async with self.transaction():
            if await self.find_niche(niche_id) is None:
                return False
            pillar_ids = select(Pillar.id).where(Pillar.niche_id == niche_id)
            await self._delete_subpillar_tree(select(Subpillar.id).where(Subpillar.pillar_id.in_(pillar_ids)))
            await self.session.execute(
                delete(Pillar).where(Pillar.niche_id == niche_id).execution_options(synchronize_session="fetch")
            )
            await self.session.execute(
                delete(Niche).where(Niche.id == niche_id).execution_options(synchronize_session="fetch")
            )
        return True

    # -------------------------
    # Pillars
    # -------------------------
    @_guarded
    async def create_pillars(self, rows: Sequence[dict]) -> list[Pillar]:
        pillars = [Pillar(**row) for row in self._stamped(rows)]
        self.session.add_all(pillars)
        await self._save()
        return pillars

    @_guarded
    async def find_pillar(self, pillar_id: str) -> Optional[Pillar]:
        return await self._first(select(Pillar).where(Pillar.id == pillar_id))

    @_guarded
    async def find_pillars_by_niche(self, niche_id: str) -> list[Pillar]:
        return await self._all(
            select(Pillar).where(Pillar.niche_id == niche_id).order_by(Pillar.created_at.asc(), Pillar.id)
        )

    @_guarded
    async def update_pillar(self, pillar_id: str, **fields: Any) -> Optional[Pillar]:
        return await self._update(Pillar, pillar_id, fields)

    @_guarded
    async def delete_pillar(self, pillar_id: str) -> bool:
        async with self.transaction():
            if await self.find_pillar(pillar_id) is None:
                return False
            await self._delete_subpillar_tree(select(Subpillar.id).where(Subpillar.pillar_id == pillar_id))
            await self.session.execute(
                delete(Pillar).where(Pillar.id == pillar_id).execution_options(synchronize_session="fetch")
            )
        return True

    # -------------------------
    # Subpillars
    # -------------------------
    @_guarded
    async def create_subpillars(self, rows: Sequence[dict]) -> list[Subpillar]:
        subpillars = [Subpillar(**row) for row in self._stamped(rows)]
        self.session.add_all(subpillars)
        await self._save()
        return subpillars

    @_guarded
    async def find_subpillar(self, subpillar_id: str) -> Optional[Subpillar]:
        return await self._first(select(Subpillar).where(Subpillar.id == subpillar_id))

    @_guarded
    async def find_subpillars_by_pillar(self, pillar_id: str) -> list[Subpillar]:
        return await self._all(
            select(Subpillar).where(Subpillar.pillar_id == pillar_id).order_by(Subpillar.created_at.asc(), Subpillar.id)
        )

    @_guarded
    async def update_subpillar(self, subpillar_id: str, **fields: Any) -> Optional[Subpillar]:
        return await self._update(Subpillar, subpillar_id, fields)

    @_guarded
    async def delete_subpillar(self, subpillar_id: str) -> bool:
        async with self.transaction():
            if await self.find_subpillar(subpillar_id) is None:
                return False
            await self._delete_subpillar_tree(select(Subpillar.id).where(Subpillar.id == subpillar_id))
        return True

    # -------------------------
    # Outlines
    # -------------------------
    async def _load_outline(self, stmt) -> Optional[Outline]:
        stmt = stmt.options(selectinload(Outline.sections)).execution_options(populate_existing=True)
        return await self._first(stmt)

    def _section_rows(self, outline_id: str, sections: Iterable[dict]) -> list[OutlineSection]:
        return [
            OutlineSection(
                outline_id=outline_id,
                title=section["title"],
                content_points=list(section.get("content_points") or []),
                order_index=section.get("order_index", 0),
                content=section.get("content"),
            )
            for section in sections
        ]

    @_guarded
    async def create_outline(self, *, subpillar_id: str, created_by_id: str, status: Any,
                             sections: Sequence[dict]) -> Outline:
        async with self.transaction():
            outline = Outline(subpillar_id=subpillar_id, created_by_id=created_by_id, status=status)
            self.session.add(outline)
            await self.session.flush()
            self.session.add_all(self._section_rows(outline.id, sections))
        return await self._load_outline(select(Outline).where(Outline.id == outline.id))

    @_guarded
    async def find_outline(self, outline_id: str) -> Optional[Outline]:
        return await self._load_outline(select(Outline).where(Outline.id == outline_id))

    @_guarded
    async def find_outline_by_subpillar(self, subpillar_id: str) -> Optional[Outline]:
        return await self._load_outline(
            select(Outline).where(Outline.subpillar_id == subpillar_id).order_by(Outline.created_at.asc()).limit(1)
        )

    @_guarded
    async def update_outline(self, outline_id: str, *, status: Any = None,
                             sections: Optional[Sequence[dict]] = None) -> Optional[Outline]:
        async with self.transaction():
            outline = await self._load_outline(select(Outline).where(Outline.id == outline_id))
            if outline is None:
                return None
            if status is not None:
                outline.status = status
            if sections is not None:
                # replace-all: readers never see a half-written list
                outline.sections.clear()
                await self.session.flush()
                outline.sections.extend(self._section_rows(outline_id, sections))
            outline.updated_at = utcnow()
        return await self._load_outline(select(Outline).where(Outline.id == outline_id))

    @_guarded
    async def delete_outline(self, outline_id: str) -> bool:
        async with self.transaction():
            if await self._first(select(Outline.id).where(Outline.id == outline_id)) is None:
                return False
            await self.session.execute(
                delete(OutlineSection).where(OutlineSection.outline_id == outline_id).execution_options(synchronize_session="fetch")
            )
            await self.session.execute(
                delete(Outline).where(Outline.id == outline_id).execution_options(synchronize_session="fetch")
            )
        return True

    # -------------------------
    # Research
    # -------------------------
    @_guarded
    async def create_research(self, **fields: Any) -> Research:
        research = Research(**fields)
        self.session.add(research)
        await self._save()
        return research

    @_guarded
    async def find_research(self, research_id: str) -> Optional[Research]:
        return await self._first(select(Research).where(Research.id == research_id))

    @_guarded
    async def find_research_by_subpillar(self, subpillar_id: str) -> list[Research]:
        return await self._all(
            select(Research).where(Research.subpillar_id == subpillar_id).order_by(Research.relevance.desc())
        )

    @_guarded
    async def update_research(self, research_id: str, **fields: Any) -> Optional[Research]:
        return await self._update(Research, research_id, fields)

    @_guarded
    async def delete_research(self, research_id: str) -> bool:
        async with self.transaction():
            if await self.find_research(research_id) is None:
                return False
            await self.session.execute(
                delete(Research).where(Research.id == research_id).execution_options(synchronize_session="fetch")
            )
        return True

    # -------------------------
    # Articles
    # -------------------------
    @_guarded
    async def create_article(self, **fields: Any) -> Article:
        article = Article(**fields)
        self.session.add(article)
        await self._save()
        return article

    @_guarded
    async def find_article(self, article_id: str) -> Optional[Article]:
        return await self._first(select(Article).where(Article.id == article_id))

    @_guarded
    async def find_articles_by_subpillar(self, subpillar_id: str) -> list[Article]:
        return await self._all(
            select(Article).where(Article.subpillar_id == subpillar_id).order_by(Article.created_at.desc())
        )

    @_guarded
    async def update_article(self, article_id: str, **fields: Any) -> Optional[Article]:
        return await self._update(Article, article_id, fields)

    @_guarded
    async def delete_article(self, article_id: str) -> bool:
        async with self.transaction():
            if await self.find_article(article_id) is None:
                return False
            await self.session.execute(
                update(Research).where(Research.article_id == article_id).values(article_id=None)
                .execution_options(synchronize_session="fetch")
            )
            await self.session.execute(
                delete(Article).where(Article.id == article_id).execution_options(synchronize_session="fetch")
            )
        return True

    # -------------------------
    # Generation ledger
    # -------------------------
    @_guarded
    async def create_generation(self, **fields: Any) -> ContentGeneration:
        generation = ContentGeneration(**fields)
        self.session.add(generation)
        await self._save()
        return generation

    @_guarded
    async def find_generation(self, generation_id: str) -> Optional[tuple[ContentGeneration, Optional[LLM]]]:
        row = (
            await self.session.execute(
                select(ContentGeneration, LLM)
                .outerjoin(LLM, ContentGeneration.llm_id == LLM.id)
                .where(ContentGeneration.id == generation_id)
            )
        ).first()
        return (row[0], row[1]) if row else None

    @_guarded
    async def find_generations_by_content(self, content_id: str) -> list[tuple[ContentGeneration, Optional[LLM]]]:
        rows = (
            await self.session.execute(
                select(ContentGeneration, LLM)
                .outerjoin(LLM, ContentGeneration.llm_id == LLM.id)
                .where(ContentGeneration.content_id == content_id)
                .order_by(ContentGeneration.generated_at.desc())
            )
        ).all()
        return [(gen, llm) for gen, llm in rows]

    @_guarded
    async def update_generation(self, generation_id: str, **fields: Any) -> Optional[ContentGeneration]:
        return await self._update(ContentGeneration, generation_id, fields)

    @_guarded
    async def upsert_llm(self, llm_id: str, *, name: str, model_id: str, provider: str) -> LLM:
        llm = await self._first(select(LLM).where(LLM.id == llm_id))
        if llm is None:
            llm = LLM(id=llm_id, name=name, model_id=model_id, provider=provider)
            self.session.add(llm)
        else:
            llm.name, llm.model_id, llm.provider = name, model_id, provider
        await self._save()
        return llm

    @_guarded
    async def find_llms(self, provider: Optional[str] = None) -> list[LLM]:
        stmt = select(LLM)
        if provider is not None:
            return await self._all(stmt.where(LLM.provider == provider).order_by(LLM.name))
        return await self._all(stmt.order_by(LLM.provider, LLM.name))

    @_guarded
    async def find_llm(self, llm_id: str) -> Optional[LLM]:
        return await self._first(select(LLM).where(LLM.id == llm_id))

    # -------------------------
    # Workflow steps / per-user settings
    # -------------------------
    @_guarded
    async def ensure_workflow_step(self, key: str, **defaults: Any) -> WorkflowStep:
        """Insert the step when missing; an existing row keeps its values."""
        step = await self._first(select(WorkflowStep).where(WorkflowStep.key == key))
        if step is None:
            step = WorkflowStep(key=key, **defaults)
            self.session.add(step)
            await self._save()
        return step

    @_guarded
    async def find_workflow_steps(self) -> list[tuple[WorkflowStep, Optional[LLM]]]:
        rows = (
            await self.session.execute(
                select(WorkflowStep, LLM)
                .outerjoin(LLM, WorkflowStep.default_llm_id == LLM.id)
                .order_by(WorkflowStep.order_index, WorkflowStep.id)
            )
        ).all()
        return [(step, llm) for step, llm in rows]

    @_guarded
    async def find_workflow_step(self, step_id: int) -> Optional[WorkflowStep]:
        return await self._first(select(WorkflowStep).where(WorkflowStep.id == step_id))

    @_guarded
    async def find_workflow_step_by_key(self, key: str) -> Optional[WorkflowStep]:
        return await self._first(select(WorkflowStep).where(WorkflowStep.key == key))

    @_guarded
    async def find_user_step_settings(self, user_id: str) -> list[tuple[UserStepSettings, Optional[LLM]]]:
        rows = (
            await self.session.execute(
                select(UserStepSettings, LLM)
                .outerjoin(LLM, UserStepSettings.llm_id == LLM.id)
                .where(UserStepSettings.user_id == user_id)
                .order_by(UserStepSettings.step_id)
            )
        ).all()
        return [(setting, llm) for setting, llm in rows]

    @_guarded
    async def find_user_step_setting(self, user_id: str, step_id: int) -> Optional[UserStepSettings]:
        return await self._first(
            select(UserStepSettings).where(UserStepSettings.user_id == user_id, UserStepSettings.step_id == step_id)
        )

    @_guarded
    async def upsert_user_step_settings(self, user_id: str, step_id: int, **fields: Any) -> UserStepSettings:
        setting = await self.find_user_step_setting(user_id, step_id)
        if setting is None:
            setting = UserStepSettings(user_id=user_id, step_id=step_id, **fields)
            self.session.add(setting)
        else:
            for key, value in fields.items():
                setattr(setting, key, value)
        await self._save()
        return setting

    @_guarded
    async def delete_user_step_settings(self, user_id: str) -> int:
        async with self.transaction():
            ids = await self._all(select(UserStepSettings.id).where(UserStepSettings.user_id == user_id))
            if ids:
                await self.session.execute(
                    delete(UserStepSettings).where(UserStepSettings.id.in_(ids))
                    .execution_options(synchronize_session="fetch")
                )
        return len(ids)


__all__ = ["EntityStore", "SqlEntityStore"]
