from fastapi import APIRouter, Depends

from ..routes_shared import get_settings_service
from ..schemas import (
    DataResponse,
    LLMRead,
    StepSettingsUpdate,
    UserStepSettingsRead,
    WorkflowStepRead,
)
from ..services.steps import WorkflowSettingsService
from ..utils import require_authenticated_user

router = APIRouter(tags=["workflow"])


# -------------------------
# LLM catalog
# -------------------------
@router.get("/llms", response_model=DataResponse[list[LLMRead]])
async def list_llms(
    user_id: str = Depends(require_authenticated_user),
    steps: WorkflowSettingsService = Depends(get_settings_service),
):
    return {"data": await steps.list_llms()}


@router.get("/llms/{provider}", response_model=DataResponse[list[LLMRead]])
async def list_llms_by_provider(
    provider: str,
    user_id: str = Depends(require_authenticated_user),
    steps: WorkflowSettingsService = Depends(get_settings_service),
):
    return {"data": await steps.list_llms(provider)}


# -------------------------
# Steps and per-user settings
# -------------------------
@router.get("/workflow/steps", response_model=DataResponse[list[WorkflowStepRead]])
async def list_workflow_steps(
    user_id: str = Depends(require_authenticated_user),
    steps: WorkflowSettingsService = Depends(get_settings_service),
):
    return {"data": await steps.list_steps()}


@router.get("/workflow/settings", response_model=DataResponse[list[UserStepSettingsRead]])
async def get_step_settings(
    user_id: str = Depends(require_authenticated_user),
    steps: WorkflowSettingsService = Depends(get_settings_service),
):
    return {"data": await steps.get_user_settings(user_id)}


@router.put("/workflow/steps/{step_id}/settings", response_model=DataResponse[UserStepSettingsRead])
async def update_step_settings(
    step_id: int,
    payload: StepSettingsUpdate,
    user_id: str = Depends(require_authenticated_user),
    steps: WorkflowSettingsService = Depends(get_settings_service),
):
    return {"data": await steps.update_user_settings(user_id, step_id, payload)}


@router.post("/workflow/settings/reset")
async def reset_step_settings(
    user_id: str = Depends(require_authenticated_user),
    steps: WorkflowSettingsService = Depends(get_settings_service),
):
    removed = await steps.reset_user_settings(user_id)
    return {"data": {"reset": True, "removed": removed}}
