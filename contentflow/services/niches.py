# services/niches.py
import logging
from typing import Optional

from contentflow.errors import NotFoundError
from contentflow.models import Niche, NicheStatus
from contentflow.services.ownership import assert_owner
from contentflow.services.workflow import NICHE_TRANSITIONS, check_transition
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)


class NicheService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def list(self, user_id: str) -> list[Niche]:
        niches = await self.store.find_niches_by_user(user_id)
        logger.info("Found %d niches for user %s", len(niches), user_id)
        return niches

    async def create(self, user_id: str, name: str) -> Niche:
        logger.info("Creating niche %r for user %s", name, user_id)
        return await self.store.create_niche(
            name=name.strip(),
            user_id=user_id,
            pillars=[],
            progress=0,
            status=NicheStatus.pending,
        )

    async def get(self, niche_id: str, user_id: str, *, action: str = "view") -> Niche:
        niche = await self.store.find_niche(niche_id)
        if niche is None:
            raise NotFoundError("Niche not found")
        assert_owner(niche, user_id, field="user_id", action=action)
        return niche

    async def update(self, niche_id: str, user_id: str, *, name: Optional[str] = None,
                     status: Optional[NicheStatus] = None) -> Niche:
        niche = await self.get(niche_id, user_id, action="modify")
        fields = {}
        if name is not None:
            fields["name"] = name.strip()
        if status is not None and check_transition("niche", NICHE_TRANSITIONS, niche.status, status):
            fields["status"] = status
        if not fields:
            return niche
        logger.info("Updating niche %s", niche_id)
        return await self.store.update_niche(niche_id, **fields)

    async def set_status(self, niche_id: str, user_id: str, status: NicheStatus) -> Niche:
        niche = await self.get(niche_id, user_id, action="modify")
        if not check_transition("niche", NICHE_TRANSITIONS, niche.status, status):
            return niche
        logger.info("Niche %s: %s -> %s", niche_id, niche.status.value, status.value)
        return await self.store.update_niche(niche_id, status=status)

    async def delete(self, niche_id: str, user_id: str) -> bool:
        await self.get(niche_id, user_id, action="delete")
        logger.info("Deleting niche %s and its pillar tree", niche_id)
        return await self.store.delete_niche(niche_id)
