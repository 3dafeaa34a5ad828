from fastapi import APIRouter, Depends

from ..routes_shared import get_subpillar_service
from ..schemas import DataResponse, SubpillarRead, SubpillarUpdate
from ..services.subpillars import SubpillarService
from ..utils import require_authenticated_user

router = APIRouter(tags=["subpillars"])


@router.get("/subpillars/{subpillar_id}", response_model=DataResponse[SubpillarRead])
async def get_subpillar(
    subpillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    subpillars: SubpillarService = Depends(get_subpillar_service),
):
    return {"data": SubpillarRead.model_validate(await subpillars.get(subpillar_id))}


@router.put("/subpillars/{subpillar_id}", response_model=DataResponse[SubpillarRead])
async def update_subpillar(
    subpillar_id: str,
    payload: SubpillarUpdate,
    user_id: str = Depends(require_authenticated_user),
    subpillars: SubpillarService = Depends(get_subpillar_service),
):
    subpillar = await subpillars.update(subpillar_id, user_id, title=payload.title, status=payload.status)
    return {"data": SubpillarRead.model_validate(subpillar)}


@router.delete("/subpillars/{subpillar_id}")
async def delete_subpillar(
    subpillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    subpillars: SubpillarService = Depends(get_subpillar_service),
):
    await subpillars.delete(subpillar_id, user_id)
    return {"data": {"id": subpillar_id, "deleted": True}}
