# services/subpillars.py
import logging
from typing import Optional

from contentflow.errors import NotFoundError, ValidationError
from contentflow.models import Subpillar, SubpillarStatus
from contentflow.services.ownership import assert_owner
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)

# older ledger-path vocabulary; stored rows never carry these
LEGACY_STATUSES = frozenset({"active", "archived"})


def parse_subpillar_status(value: str) -> SubpillarStatus:
    raw = (value or "").strip().lower()
    if raw in LEGACY_STATUSES:
        raise ValidationError(
            f"Subpillar status '{raw}' is a legacy value; use one of: "
            + ", ".join(s.value for s in SubpillarStatus)
        )
    try:
        return SubpillarStatus(raw)
    except ValueError:
        raise ValidationError(f"Invalid subpillar status: {value}") from None


class SubpillarService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def list_by_pillar(self, pillar_id: str) -> list[Subpillar]:
        if await self.store.find_pillar(pillar_id) is None:
            raise NotFoundError("Pillar not found")
        return await self.store.find_subpillars_by_pillar(pillar_id)

    async def get(self, subpillar_id: str) -> Subpillar:
        subpillar = await self.store.find_subpillar(subpillar_id)
        if subpillar is None:
            raise NotFoundError("Subpillar not found")
        return subpillar

    async def update(self, subpillar_id: str, user_id: str, *, title: Optional[str] = None,
                     status: Optional[str] = None) -> Subpillar:
        subpillar = await self.get(subpillar_id)
        assert_owner(subpillar, user_id)
        fields = {}
        if title is not None:
            fields["title"] = title.strip()
        if status is not None:
            # no transition graph; content steps move freely between stages
            fields["status"] = parse_subpillar_status(status)
        if not fields:
            return subpillar
        logger.info("Updating subpillar %s", subpillar_id)
        return await self.store.update_subpillar(subpillar_id, **fields)

    async def delete(self, subpillar_id: str, user_id: str) -> bool:
        subpillar = await self.get(subpillar_id)
        assert_owner(subpillar, user_id, action="delete")
        logger.info("Deleting subpillar %s", subpillar_id)
        return await self.store.delete_subpillar(subpillar_id)
