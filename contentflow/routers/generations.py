from fastapi import APIRouter, Depends, status

from ..routes_shared import get_ledger
from ..schemas import (
    DataResponse,
    GenerationAttemptRead,
    GenerationMetadataUpdate,
    GenerationRecordRequest,
    GenerationStatusUpdate,
)
from ..services.ledger import GenerationLedger
from ..utils import require_authenticated_user

router = APIRouter(tags=["generations"])


@router.post("/generations", status_code=status.HTTP_201_CREATED, response_model=DataResponse[GenerationAttemptRead])
async def record_generation(
    payload: GenerationRecordRequest,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    attempt = await ledger.record_attempt(payload.content_type, payload.content_id, payload)
    return {"data": attempt}


@router.get("/generations/{generation_id}", response_model=DataResponse[GenerationAttemptRead])
async def get_generation(
    generation_id: str,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    return {"data": await ledger.get(generation_id)}


@router.put("/generations/{generation_id}/status", response_model=DataResponse[GenerationAttemptRead])
async def update_generation_status(
    generation_id: str,
    payload: GenerationStatusUpdate,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    return {"data": await ledger.update_status(generation_id, payload.status, payload.error)}


@router.put("/generations/{generation_id}/metadata", response_model=DataResponse[GenerationAttemptRead])
async def update_generation_metadata(
    generation_id: str,
    payload: GenerationMetadataUpdate,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    return {"data": await ledger.update_metadata(generation_id, payload.metadata)}


@router.post("/generations/{generation_id}/retry", status_code=status.HTTP_201_CREATED, response_model=DataResponse[GenerationAttemptRead])
async def retry_generation(
    generation_id: str,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    return {"data": await ledger.retry(generation_id)}


@router.get("/generations/{generation_id}/chain", response_model=DataResponse[list[GenerationAttemptRead]])
async def generation_retry_chain(
    generation_id: str,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    return {"data": await ledger.retry_chain(generation_id)}


@router.get("/content/{content_id}/generations", response_model=DataResponse[list[GenerationAttemptRead]])
async def content_generation_history(
    content_id: str,
    user_id: str = Depends(require_authenticated_user),
    ledger: GenerationLedger = Depends(get_ledger),
):
    return {"data": await ledger.history(content_id)}
