# byok/app/api/v1/endpoints/generations.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from byok.app.api import deps
from byok.app.providers.catalog import ProviderId
from byok.app.schemas.generation import GenerationCreate, GenerationJobResponse
from byok.app.schemas.user import CurrentUser
from byok.app.services.orchestrator import GenerationOrchestrator

router = APIRouter()


# 1. HISTORY, NEWEST FIRST (GET)
@router.get("/", response_model=List[GenerationJobResponse])
async def read_generations(
        provider: Optional[ProviderId] = None,
        orchestrator: GenerationOrchestrator = Depends(deps.get_orchestrator),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    return await orchestrator.list_jobs(provider, user=current_user)


# 2. SUBMIT A PROMPT (POST)
# 202: the job is accepted; poll GET /generations/{id} for the outcome
@router.post("/", response_model=GenerationJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_generation(
        item_in: GenerationCreate,
        orchestrator: GenerationOrchestrator = Depends(deps.get_orchestrator),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    job_id = await orchestrator.submit(
        item_in.provider_id,
        item_in.prompt,
        item_in.settings,
        user=current_user,
    )
    return await orchestrator.get_job(job_id, user=current_user)


# 3. ONE JOB (GET)
@router.get("/{job_id}", response_model=GenerationJobResponse)
async def read_generation(
        job_id: str,
        orchestrator: GenerationOrchestrator = Depends(deps.get_orchestrator),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    return await orchestrator.get_job(job_id, user=current_user)


# 4. STOP POLLING (POST)
@router.post("/{job_id}/cancel", response_model=GenerationJobResponse)
async def cancel_generation(
        job_id: str,
        orchestrator: GenerationOrchestrator = Depends(deps.get_orchestrator),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    return await orchestrator.cancel(job_id, user=current_user)


# 5. DELETE FROM HISTORY (DELETE)
@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_generation(
        job_id: str,
        orchestrator: GenerationOrchestrator = Depends(deps.get_orchestrator),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    await orchestrator.remove(job_id, user=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
