"""
Applications API routes.
"""
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.security import Actor
from fulfillment.database import get_session
from fulfillment.schemas.application import (
    ApplicationCreate, ApplicationUpdate, ApplicationApprove, ApplicationReject,
    ApplicationResponse, ApprovalResult
)
from fulfillment.schemas.common import MessageResponse
from fulfillment.services.application_service import ApplicationService

router = APIRouter(prefix=f"{settings.API_PREFIX}/applications", tags=["applications"])


@router.post("/", response_model=ApplicationResponse, status_code=201)
async def submit_application(
    application_data: ApplicationCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Apply to a campaign."""
    application_service = ApplicationService(session)
    return await application_service.submit_application(
        actor,
        application_data.campaign_id,
        application_data.message,
        proposed_price=application_data.proposed_price,
        portfolio_links=application_data.portfolio_links,
        availability=application_data.availability
    )


@router.get("/", response_model=List[ApplicationResponse])
async def list_applications(
    campaign_id: uuid.UUID,
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    application_service = ApplicationService(session)
    return await application_service.list_for_campaign(campaign_id, status)


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: uuid.UUID,
    application_data: ApplicationUpdate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Edit a submitted application."""
    application_service = ApplicationService(session)
    return await application_service.update_application(actor, application_id, application_data)


@router.post("/{application_id}/approve", response_model=ApprovalResult)
async def approve_application(
    application_id: uuid.UUID,
    approval: Optional[ApplicationApprove] = None,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Approve an application and create (or return) its task."""
    application_service = ApplicationService(session)
    return await application_service.approve_application(
        actor, application_id, approval.custom_price if approval else None
    )


@router.post("/{application_id}/reject", response_model=MessageResponse)
async def reject_application(
    application_id: uuid.UUID,
    rejection: Optional[ApplicationReject] = None,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Reject an application with feedback."""
    rejection = rejection or ApplicationReject()
    application_service = ApplicationService(session)
    await application_service.reject_application(
        actor, application_id, rejection.reason_code, rejection.note
    )
    return {"message": "Application rejected"}
