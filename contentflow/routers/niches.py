from typing import Optional

from fastapi import APIRouter, Depends, status

from ..routes_shared import get_niche_service, get_pillar_service, get_workflow
from ..schemas import (
    DataResponse,
    GenerationRequest,
    NicheCreate,
    NicheRead,
    NicheStatusUpdate,
    NicheUpdate,
    PillarRead,
)
from ..services.niches import NicheService
from ..services.pillars import PillarService
from ..services.workflow import GenerationWorkflow
from ..utils import require_authenticated_user

router = APIRouter(tags=["niches"])


@router.get("/niches", response_model=DataResponse[list[NicheRead]])
async def list_niches(
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
):
    rows = await niches.list(user_id)
    return {"data": [NicheRead.model_validate(n) for n in rows]}


@router.post("/niches", status_code=status.HTTP_201_CREATED, response_model=DataResponse[NicheRead])
async def create_niche(
    payload: NicheCreate,
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
):
    niche = await niches.create(user_id, payload.name)
    return {"data": NicheRead.model_validate(niche)}


@router.get("/niches/{niche_id}", response_model=DataResponse[NicheRead])
async def get_niche(
    niche_id: str,
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
):
    niche = await niches.get(niche_id, user_id)
    return {"data": NicheRead.model_validate(niche)}


@router.put("/niches/{niche_id}", response_model=DataResponse[NicheRead])
async def update_niche(
    niche_id: str,
    payload: NicheUpdate,
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
):
    niche = await niches.update(niche_id, user_id, name=payload.name, status=payload.status)
    return {"data": NicheRead.model_validate(niche)}


@router.put("/niches/{niche_id}/status", response_model=DataResponse[NicheRead])
async def update_niche_status(
    niche_id: str,
    payload: NicheStatusUpdate,
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
):
    niche = await niches.set_status(niche_id, user_id, payload.status)
    return {"data": NicheRead.model_validate(niche)}


@router.delete("/niches/{niche_id}")
async def delete_niche(
    niche_id: str,
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
):
    await niches.delete(niche_id, user_id)
    return {"data": {"id": niche_id, "deleted": True}}


@router.get("/niches/{niche_id}/summary-drift")
async def niche_summary_drift(
    niche_id: str,
    user_id: str = Depends(require_authenticated_user),
    niches: NicheService = Depends(get_niche_service),
    pillars: PillarService = Depends(get_pillar_service),
):
    await niches.get(niche_id, user_id)
    return {"data": await pillars.summary_drift(niche_id)}


# -------------------------
# Pillar generation
# -------------------------
@router.post(
    "/niches/{niche_id}/pillars/generate",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[list[PillarRead]],
)
async def generate_pillars(
    niche_id: str,
    payload: Optional[GenerationRequest] = None,
    user_id: str = Depends(require_authenticated_user),
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    created = await workflow.generate_pillars(niche_id, user_id, payload)
    return {"data": [PillarRead.model_validate(p) for p in created]}


@router.post(
    "/niches/{niche_id}/pillars/regenerate",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[list[PillarRead]],
)
async def regenerate_pillars(
    niche_id: str,
    payload: Optional[GenerationRequest] = None,
    user_id: str = Depends(require_authenticated_user),
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    # appends another batch; earlier pillars are kept
    created = await workflow.generate_pillars(niche_id, user_id, payload)
    return {"data": [PillarRead.model_validate(p) for p in created]}
