"""
Campaigns API routes.
"""
import uuid
from typing import List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.security import Actor
from fulfillment.database import get_session
from fulfillment.schemas.campaign import (
    CampaignCreate, CampaignResponse, CampaignProductCreate, CampaignProductResponse
)
from fulfillment.schemas.common import MessageResponse
from fulfillment.services.application_service import ApplicationService
from fulfillment.services.campaign_service import CampaignService

router = APIRouter(prefix=f"{settings.API_PREFIX}/campaigns", tags=["campaigns"])


@router.post("/", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    campaign_data: CampaignCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Create a new campaign."""
    campaign_service = CampaignService(session)
    return await campaign_service.create(actor, campaign_data)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Get a campaign by ID."""
    campaign_service = CampaignService(session)
    return await campaign_service.get(campaign_id)


@router.get("/{campaign_id}/products", response_model=List[CampaignProductResponse])
async def list_products(
    campaign_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    campaign_service = CampaignService(session)
    return await campaign_service.list_products(campaign_id)


@router.post("/{campaign_id}/products", response_model=CampaignProductResponse, status_code=201)
async def add_product(
    campaign_id: uuid.UUID,
    product_data: CampaignProductCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Add a product; the first product backfills shipment requests."""
    campaign_service = CampaignService(session)
    return await campaign_service.add_product(actor, campaign_id, product_data)


@router.post("/{campaign_id}/backfill-shipments", response_model=MessageResponse)
async def backfill_shipments(
    campaign_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Create missing shipment requests for approved creators."""
    application_service = ApplicationService(session)
    created = await application_service.backfill_shipments(actor, campaign_id)
    return {"message": f"Created {created} shipment requests"}
