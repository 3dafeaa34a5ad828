from typing import Optional

from fastapi import APIRouter, Depends, status

from ..routes_shared import get_pillar_service, get_subpillar_service, get_workflow
from ..schemas import (
    DataResponse,
    GenerationRequest,
    PillarCreate,
    PillarRead,
    PillarUpdate,
    SubpillarRead,
)
from ..services.pillars import PillarService
from ..services.subpillars import SubpillarService
from ..services.workflow import GenerationWorkflow
from ..utils import require_authenticated_user

router = APIRouter(tags=["pillars"])


@router.get("/niches/{niche_id}/pillars", response_model=DataResponse[list[PillarRead]])
async def list_pillars(
    niche_id: str,
    user_id: str = Depends(require_authenticated_user),
    pillars: PillarService = Depends(get_pillar_service),
):
    rows = await pillars.list_by_niche(niche_id)
    return {"data": [PillarRead.model_validate(p) for p in rows]}


@router.post("/niches/{niche_id}/pillars", status_code=status.HTTP_201_CREATED, response_model=DataResponse[PillarRead])
async def create_pillar(
    niche_id: str,
    payload: PillarCreate,
    user_id: str = Depends(require_authenticated_user),
    pillars: PillarService = Depends(get_pillar_service),
):
    pillar = await pillars.create(niche_id, user_id, payload.title)
    return {"data": PillarRead.model_validate(pillar)}


@router.get("/pillars/{pillar_id}", response_model=DataResponse[PillarRead])
async def get_pillar(
    pillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    pillars: PillarService = Depends(get_pillar_service),
):
    return {"data": PillarRead.model_validate(await pillars.get(pillar_id))}


@router.put("/pillars/{pillar_id}", response_model=DataResponse[PillarRead])
async def update_pillar(
    pillar_id: str,
    payload: PillarUpdate,
    user_id: str = Depends(require_authenticated_user),
    pillars: PillarService = Depends(get_pillar_service),
):
    pillar = await pillars.update(pillar_id, user_id, title=payload.title, status=payload.status)
    return {"data": PillarRead.model_validate(pillar)}


@router.put("/pillars/{pillar_id}/approve", response_model=DataResponse[PillarRead])
async def approve_pillar(
    pillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    pillars: PillarService = Depends(get_pillar_service),
):
    pillar = await pillars.approve(pillar_id, user_id)
    return {"data": PillarRead.model_validate(pillar)}


@router.delete("/pillars/{pillar_id}")
async def delete_pillar(
    pillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    pillars: PillarService = Depends(get_pillar_service),
):
    await pillars.delete(pillar_id, user_id)
    return {"data": {"id": pillar_id, "deleted": True}}


# -------------------------
# Subpillars under a pillar
# -------------------------
@router.get("/pillars/{pillar_id}/subpillars", response_model=DataResponse[list[SubpillarRead]])
async def list_subpillars(
    pillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    subpillars: SubpillarService = Depends(get_subpillar_service),
):
    rows = await subpillars.list_by_pillar(pillar_id)
    return {"data": [SubpillarRead.model_validate(s) for s in rows]}


@router.post(
    "/pillars/{pillar_id}/subpillars/generate",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[list[SubpillarRead]],
)
async def generate_subpillars(
    pillar_id: str,
    payload: Optional[GenerationRequest] = None,
    user_id: str = Depends(require_authenticated_user),
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    created = await workflow.generate_subpillars(pillar_id, user_id, payload)
    return {"data": [SubpillarRead.model_validate(s) for s in created]}


@router.post(
    "/pillars/{pillar_id}/subpillars/regenerate",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[list[SubpillarRead]],
)
async def regenerate_subpillars(
    pillar_id: str,
    payload: Optional[GenerationRequest] = None,
    user_id: str = Depends(require_authenticated_user),
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    created = await workflow.generate_subpillars(pillar_id, user_id, payload)
    return {"data": [SubpillarRead.model_validate(s) for s in created]}
