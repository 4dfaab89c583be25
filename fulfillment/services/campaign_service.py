"""
Campaign service - campaign setup and products.
"""
import logging
import uuid
from typing import List

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.config import settings
from fulfillment.core.exceptions import NotFoundError
from fulfillment.core.security import Actor, CAMPAIGN_ROLES, require_role
from fulfillment.database import atomic
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.campaign import Campaign, CampaignProduct
from fulfillment.repositories.campaign_repo import CampaignRepository, CampaignProductRepository
from fulfillment.schemas.campaign import CampaignCreate, CampaignProductCreate
from fulfillment.services.application_service import ApplicationService
from fulfillment.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class CampaignService:
    """Service for campaign operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.campaign_repo = CampaignRepository(session)
        self.product_repo = CampaignProductRepository(session)
        self.applications = ApplicationService(session)
        self.audit = AuditService(session)

    async def create(self, actor: Actor, campaign_data: CampaignCreate) -> Campaign:
        """Create a new campaign with its initial products."""
        require_role(actor, CAMPAIGN_ROLES, "create campaigns")

        data = campaign_data.model_dump(exclude={"products"})
        data["brand_id"] = data.get("brand_id") or actor.id
        data["currency"] = data.get("currency") or settings.DEFAULT_CURRENCY

        async with atomic(self.session):
            campaign = await self.campaign_repo.create(data)
            for product in campaign_data.products:
                await self.product_repo.create({**product.model_dump(), "campaign_id": campaign.id})

        await self.audit.record(
            actor, Actions.CAMPAIGN_CREATED, Entities.CAMPAIGN, campaign.id,
            {"title": campaign.title, "products": len(campaign_data.products)}
        )
        return campaign

    async def get(self, campaign_id: uuid.UUID) -> Campaign:
        """Get a campaign by ID."""
        campaign = await self.campaign_repo.get(campaign_id)
        if not campaign:
            raise NotFoundError("Campaign", str(campaign_id))
        return campaign

    async def list_products(self, campaign_id: uuid.UUID) -> List[CampaignProduct]:
        await self.get(campaign_id)
        return await self.product_repo.get_for_campaign(campaign_id)

    async def add_product(
        self,
        actor: Actor,
        campaign_id: uuid.UUID,
        product_data: CampaignProductCreate
    ) -> CampaignProduct:
        """
        Add a product to a campaign.

        The first product turns the campaign into a product campaign, so the
        creators approved before it get their shipment requests backfilled in
        the same unit of work.
        """
        require_role(actor, CAMPAIGN_ROLES, "add campaign products")
        campaign = await self.get(campaign_id)
        had_products = await self.campaign_repo.has_products(campaign.id)

        changed = []
        async with atomic(self.session):
            product = await self.product_repo.create({**product_data.model_dump(), "campaign_id": campaign.id})
            if not had_products:
                changed = await self.applications.backfill(campaign.id)

        await self.audit.record(
            actor, Actions.CAMPAIGN_PRODUCT_ADDED, Entities.CAMPAIGN, campaign.id,
            {"product_id": product.id, "name": product.name}
        )
        await self.applications.backfilled(actor, campaign.id, changed)
        return product
