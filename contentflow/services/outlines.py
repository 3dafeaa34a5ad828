"""Outline lifecycle and the section editor.

Sections live in ``outline_sections`` and are always read back sorted by
``order_index``, ties broken by insertion order. Every section mutation
rewrites the whole list inside one transaction, so a reader sees either the
old list or the new one.
"""
from __future__ import annotations

import logging
from typing import Iterable, Union

from contentflow.errors import NotFoundError, ValidationError
from contentflow.models import Outline, OutlineStatus
from contentflow.schemas import OutlineSectionIn
from contentflow.services.ownership import assert_owner
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)

SectionLike = Union[OutlineSectionIn, dict]


def section_dict(section: SectionLike) -> dict:
    if isinstance(section, OutlineSectionIn):
        return section.model_dump()
    if isinstance(section, dict):
        return OutlineSectionIn.model_validate(section).model_dump()
    # ORM row
    return {
        "title": section.title,
        "content_points": list(section.content_points or []),
        "order_index": section.order_index,
        "content": section.content,
    }


class OutlineService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def _owned(self, outline_id: str, user_id: str, action: str = "modify") -> Outline:
        outline = await self.get(outline_id)
        assert_owner(outline, user_id, action=action)
        return outline

    async def create(self, subpillar_id: str, user_id: str,
                     sections: Iterable[SectionLike] = ()) -> Outline:
        if await self.store.find_subpillar(subpillar_id) is None:
            raise NotFoundError("Subpillar not found")
        if await self.store.find_outline_by_subpillar(subpillar_id) is not None:
            raise ValidationError("Outline already exists for this subpillar")
        logger.info("Creating outline for subpillar %s by user %s", subpillar_id, user_id)
        return await self.store.create_outline(
            subpillar_id=subpillar_id,
            created_by_id=user_id,
            status=OutlineStatus.draft,
            sections=[section_dict(s) for s in sections],
        )

    async def get(self, outline_id: str) -> Outline:
        outline = await self.store.find_outline(outline_id)
        if outline is None:
            raise NotFoundError("Outline not found")
        return outline

    async def get_by_subpillar(self, subpillar_id: str) -> Outline:
        outline = await self.store.find_outline_by_subpillar(subpillar_id)
        if outline is None:
            raise NotFoundError("Outline not found")
        return outline

    async def replace_all_sections(self, outline_id: str, user_id: str,
                                   sections: Iterable[SectionLike]) -> Outline:
        await self._owned(outline_id, user_id)
        rows = [section_dict(s) for s in sections]
        logger.info("Replacing sections of outline %s (%d sections)", outline_id, len(rows))
        return await self.store.update_outline(outline_id, sections=rows)

    async def add_section(self, outline_id: str, user_id: str, section: SectionLike) -> Outline:
        """Append ``section``; its order_index is taken as given."""
        outline = await self._owned(outline_id, user_id)
        rows = [section_dict(s) for s in outline.sections] + [section_dict(section)]
        logger.info("Adding section to outline %s", outline_id)
        return await self.store.update_outline(outline_id, sections=rows)

    async def update_section(self, outline_id: str, user_id: str, index: int,
                             section: SectionLike) -> Outline:
        outline = await self._owned(outline_id, user_id)
        rows = [section_dict(s) for s in outline.sections]
        if index < 0 or index >= len(rows):
            raise ValidationError("Invalid section index")
        rows[index] = section_dict(section)
        logger.info("Updating section %d of outline %s", index, outline_id)
        return await self.store.update_outline(outline_id, sections=rows)

    async def update_status(self, outline_id: str, user_id: str, status: OutlineStatus) -> Outline:
        # any enum value is accepted regardless of the current one
        await self._owned(outline_id, user_id)
        logger.info("Outline %s status -> %s", outline_id, OutlineStatus(status).value)
        return await self.store.update_outline(outline_id, status=OutlineStatus(status))

    async def delete(self, outline_id: str, user_id: str) -> bool:
        await self._owned(outline_id, user_id, action="delete")
        logger.info("Deleting outline %s", outline_id)
        return await self.store.delete_outline(outline_id)

