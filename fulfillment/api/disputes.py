"""
Disputes API routes.
"""
import uuid
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.security import Actor
from fulfillment.database import get_session
from fulfillment.schemas.dispute import DisputeCreate, DisputeResolve, DisputeResponse
from fulfillment.services.dispute_service import DisputeService

router = APIRouter(prefix=settings.API_PREFIX, tags=["disputes"])


@router.post("/tasks/{task_id}/disputes", response_model=DisputeResponse, status_code=201)
async def raise_dispute(
    task_id: uuid.UUID,
    dispute: DisputeCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    dispute_service = DisputeService(session)
    return await dispute_service.raise_dispute(actor, task_id, dispute.reason)


@router.get("/disputes/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    dispute_service = DisputeService(session)
    return await dispute_service.get(dispute_id)


@router.post("/disputes/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: uuid.UUID,
    resolution: DisputeResolve,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Staff decision: approve or send back for edits."""
    dispute_service = DisputeService(session)
    return await dispute_service.resolve_dispute(actor, dispute_id, resolution.resolution, resolution.note)
