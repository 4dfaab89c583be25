"""
Tasks API routes - lifecycle and content review.
"""
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.pagination import PaginatedResponse
from fulfillment.core.security import Actor
from fulfillment.database import get_session
from fulfillment.schemas.content import (
    UploadCreate, UploadCreated, UploadResponse, RevisionCreate, RevisionResponse,
    ContentApprove, ContentApproved
)
from fulfillment.schemas.task import TaskResponse, CanTransitionResponse
from fulfillment.services.content_service import ContentService
from fulfillment.services.task_service import TaskService

router = APIRouter(prefix=f"{settings.API_PREFIX}/tasks", tags=["tasks"])


@router.get("/", response_model=PaginatedResponse[TaskResponse])
async def list_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    campaign_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """List tasks with optional campaign and status filters."""
    task_service = TaskService(session)
    return await task_service.list(actor, campaign_id, status, page, limit)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    task_service = TaskService(session)
    return await task_service.get_for_actor(actor, task_id)


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_work(
    task_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Move a selected task into production."""
    task_service = TaskService(session)
    return await task_service.start_work(actor, task_id)


@router.get("/{task_id}/can-transition", response_model=CanTransitionResponse)
async def can_transition(
    task_id: uuid.UUID,
    status: str = Query(...),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    task_service = TaskService(session)
    return {"allowed": await task_service.can_transition(task_id, status)}


@router.get("/{task_id}/uploads", response_model=List[UploadResponse])
async def list_uploads(
    task_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    content_service = ContentService(session)
    return await content_service.list_uploads(actor, task_id)


@router.post("/{task_id}/uploads", response_model=UploadCreated, status_code=201)
async def upload_content(
    task_id: uuid.UUID,
    upload: UploadCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Register an uploaded content file and send the task for review."""
    content_service = ContentService(session)
    record = await content_service.upload_content(actor, task_id, upload)
    return {"upload_id": record.id}


@router.post("/{task_id}/revisions", response_model=RevisionResponse, status_code=201)
async def request_revision(
    task_id: uuid.UUID,
    revision: RevisionCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    content_service = ContentService(session)
    return await content_service.request_revision(actor, task_id, revision.tags, revision.note)


@router.post("/{task_id}/approve", response_model=ContentApproved)
async def approve_content(
    task_id: uuid.UUID,
    approval: ContentApprove,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Approve content; creates the pending payment."""
    content_service = ContentService(session)
    payment = await content_service.approve_content(actor, task_id, approval.rating, approval.note)
    return {"payment_id": payment.id}
