from typing import Optional

from fastapi import APIRouter, Depends, status

from ..routes_shared import get_outline_service, get_workflow
from ..schemas import (
    DataResponse,
    GenerationRequest,
    OutlineCreate,
    OutlineRead,
    OutlineSectionIn,
    OutlineSectionsUpdate,
    OutlineStatusUpdate,
)
from ..services.outlines import OutlineService
from ..services.workflow import GenerationWorkflow
from ..utils import require_authenticated_user

router = APIRouter(tags=["outlines"])


@router.post("/subpillars/{subpillar_id}/outline", status_code=status.HTTP_201_CREATED, response_model=DataResponse[OutlineRead])
async def create_outline(
    subpillar_id: str,
    payload: OutlineCreate,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    outline = await outlines.create(subpillar_id, user_id, payload.sections)
    return {"data": OutlineRead.model_validate(outline)}


@router.get("/subpillars/{subpillar_id}/outline", response_model=DataResponse[OutlineRead])
async def get_subpillar_outline(
    subpillar_id: str,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    return {"data": OutlineRead.model_validate(await outlines.get_by_subpillar(subpillar_id))}


@router.get("/outlines/{outline_id}", response_model=DataResponse[OutlineRead])
async def get_outline(
    outline_id: str,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    return {"data": OutlineRead.model_validate(await outlines.get(outline_id))}


@router.put("/outlines/{outline_id}", response_model=DataResponse[OutlineRead])
async def replace_outline_sections(
    outline_id: str,
    payload: OutlineSectionsUpdate,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    outline = await outlines.replace_all_sections(outline_id, user_id, payload.sections)
    return {"data": OutlineRead.model_validate(outline)}


@router.post("/outlines/{outline_id}/sections", status_code=status.HTTP_201_CREATED, response_model=DataResponse[OutlineRead])
async def add_outline_section(
    outline_id: str,
    payload: OutlineSectionIn,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    outline = await outlines.add_section(outline_id, user_id, payload)
    return {"data": OutlineRead.model_validate(outline)}


@router.put("/outlines/{outline_id}/sections/{index}", response_model=DataResponse[OutlineRead])
async def update_outline_section(
    outline_id: str,
    index: int,
    payload: OutlineSectionIn,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    outline = await outlines.update_section(outline_id, user_id, index, payload)
    return {"data": OutlineRead.model_validate(outline)}


@router.put("/outlines/{outline_id}/status", response_model=DataResponse[OutlineRead])
async def update_outline_status(
    outline_id: str,
    payload: OutlineStatusUpdate,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    outline = await outlines.update_status(outline_id, user_id, payload.status)
    return {"data": OutlineRead.model_validate(outline)}


@router.delete("/outlines/{outline_id}")
async def delete_outline(
    outline_id: str,
    user_id: str = Depends(require_authenticated_user),
    outlines: OutlineService = Depends(get_outline_service),
):
    await outlines.delete(outline_id, user_id)
    return {"data": {"id": outline_id, "deleted": True}}


# -------------------------
# Generation
# -------------------------
@router.post(
    "/subpillars/{subpillar_id}/outline/generate",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[OutlineRead],
)
async def generate_outline(
    subpillar_id: str,
    payload: Optional[GenerationRequest] = None,
    user_id: str = Depends(require_authenticated_user),
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    outline = await workflow.generate_outline(subpillar_id, user_id, payload)
    return {"data": OutlineRead.model_validate(outline)}


@router.post(
    "/outlines/{outline_id}/sections/{index}/content-points/generate",
    response_model=DataResponse[OutlineRead],
)
async def generate_content_points(
    outline_id: str,
    index: int,
    payload: Optional[GenerationRequest] = None,
    user_id: str = Depends(require_authenticated_user),
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    outline = await workflow.generate_content_points(outline_id, index, user_id, payload)
    return {"data": OutlineRead.model_validate(outline)}
