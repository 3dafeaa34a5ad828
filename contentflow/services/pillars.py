# services/pillars.py
import logging
from typing import Optional

from contentflow.errors import NotFoundError, ValidationError
from contentflow.models import Pillar, PillarStatus
from contentflow.services.ownership import assert_owner
from contentflow.services.workflow import PILLAR_TRANSITIONS, check_transition, compute_progress
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)


class PillarService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def _niche_for_owner(self, niche_id: str, user_id: str):
        niche = await self.store.find_niche(niche_id)
        if niche is None:
            raise NotFoundError("Niche not found")
        assert_owner(niche, user_id, field="user_id", action="add pillars to")
        return niche

    async def _sync_summary(self, pillar: Pillar, previous_title: Optional[str] = None) -> None:
        """Update the niche summary entry for ``pillar``; unmatched titles stay drifted."""
        niche = await self.store.find_niche(pillar.niche_id)
        if niche is None:
            return
        summary = [dict(item) for item in (niche.pillars or [])]
        lookup = previous_title or pillar.title
        for item in summary:
            if item.get("title") == lookup:
                item["title"] = pillar.title
                item["status"] = PillarStatus(pillar.status).value
                item["approved"] = pillar.status == PillarStatus.approved
                break
        else:
            logger.warning("Pillar %r has no entry in niche %s summary", lookup, niche.id)
            return
        await self.store.update_niche(niche.id, pillars=summary, progress=compute_progress(summary))

    async def create(self, niche_id: str, user_id: str, title: str) -> Pillar:
        niche = await self._niche_for_owner(niche_id, user_id)
        logger.info("Creating pillar for niche %s by user %s", niche_id, user_id)
        async with self.store.transaction():
            (pillar,) = await self.store.create_pillars(
                [{"title": title.strip(), "niche_id": niche_id, "created_by_id": user_id,
                  "status": PillarStatus.pending}]
            )
            summary = list(niche.pillars or []) + [
                {"title": pillar.title, "status": PillarStatus.pending.value, "approved": False}
            ]
            await self.store.update_niche(niche_id, pillars=summary, progress=compute_progress(summary))
        return pillar

    async def list_by_niche(self, niche_id: str) -> list[Pillar]:
        if await self.store.find_niche(niche_id) is None:
            raise NotFoundError("Niche not found")
        return await self.store.find_pillars_by_niche(niche_id)

    async def get(self, pillar_id: str) -> Pillar:
        pillar = await self.store.find_pillar(pillar_id)
        if pillar is None:
            raise NotFoundError("Pillar not found")
        return pillar

    async def update(self, pillar_id: str, user_id: str, *, title: Optional[str] = None,
                     status: Optional[PillarStatus] = None) -> Pillar:
        pillar = await self.get(pillar_id)
        assert_owner(pillar, user_id)
        fields = {}
        if title is not None:
            fields["title"] = title.strip()
        if status is not None and check_transition("pillar", PILLAR_TRANSITIONS, pillar.status, status):
            fields["status"] = status
        if not fields:
            return pillar
        previous_title = pillar.title
        logger.info("Updating pillar %s", pillar_id)
        async with self.store.transaction():
            updated = await self.store.update_pillar(pillar_id, **fields)
            await self._sync_summary(updated, previous_title=previous_title)
        return updated

    async def approve(self, pillar_id: str, user_id: str) -> Pillar:
        pillar = await self.get(pillar_id)
        assert_owner(pillar, user_id, action="approve")
        if pillar.status == PillarStatus.approved:
            raise ValidationError("Pillar is already approved")
        check_transition("pillar", PILLAR_TRANSITIONS, pillar.status, PillarStatus.approved)
        logger.info("Approving pillar %s by user %s", pillar_id, user_id)
        async with self.store.transaction():
            updated = await self.store.update_pillar(pillar_id, status=PillarStatus.approved)
            await self._sync_summary(updated)
        return updated

    async def delete(self, pillar_id: str, user_id: str) -> bool:
        pillar = await self.get(pillar_id)
        assert_owner(pillar, user_id, action="delete")
        logger.info("Deleting pillar %s", pillar_id)
        # the niche summary keeps its entry; see summary_drift()
        return await self.store.delete_pillar(pillar_id)

    async def summary_drift(self, niche_id: str) -> dict:
        """Compare the niche's denormalized summary against the pillars table by title."""
        niche = await self.store.find_niche(niche_id)
        if niche is None:
            raise NotFoundError("Niche not found")
        pillars = await self.store.find_pillars_by_niche(niche_id)
        table_titles = [p.title for p in pillars]
        summary_titles = [item.get("title") for item in (niche.pillars or [])]
        mismatched = [
            p.title for p in pillars
            for item in (niche.pillars or [])
            if item.get("title") == p.title and item.get("status") != PillarStatus(p.status).value
        ]
        return {
            "missing_from_summary": [t for t in table_titles if t not in summary_titles],
            "missing_from_table": [t for t in summary_titles if t not in table_titles],
            "status_mismatch": mismatched,
        }
