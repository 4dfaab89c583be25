"""
Campaign repository.
"""
import uuid
from typing import List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from fulfillment.models.campaign import Campaign, CampaignProduct
from fulfillment.repositories.base import BaseRepository


class CampaignRepository(BaseRepository[Campaign]):
    """Repository for Campaign operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Campaign, session)

    async def has_products(self, campaign_id: uuid.UUID) -> bool:
        """True when the campaign ships at least one physical product."""
        query = select(func.count()).select_from(CampaignProduct).where(
            CampaignProduct.campaign_id == campaign_id
        )
        result = await self.session.exec(query)
        return result.one() > 0


class CampaignProductRepository(BaseRepository[CampaignProduct]):
    """Repository for CampaignProduct operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(CampaignProduct, session)

    async def get_for_campaign(self, campaign_id: uuid.UUID) -> List[CampaignProduct]:
        return await self.list({"campaign_id": campaign_id}, order_desc=False)
