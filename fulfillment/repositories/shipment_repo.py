"""
Shipment repositories.
"""
import uuid
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.shipment import ShipmentRequest, ShipmentAddress, Shipment
from fulfillment.repositories.base import BaseRepository


class ShipmentRequestRepository(BaseRepository[ShipmentRequest]):
    """Repository for ShipmentRequest operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ShipmentRequest, session)

    async def get_for_creator(
        self, campaign_id: uuid.UUID, creator_id: uuid.UUID
    ) -> Optional[ShipmentRequest]:
        query = select(ShipmentRequest).where(
            ShipmentRequest.campaign_id == campaign_id,
            ShipmentRequest.creator_id == creator_id
        )
        result = await self.session.exec(query)
        return result.first()


class ShipmentAddressRepository(BaseRepository[ShipmentAddress]):
    """Repository for creator addresses."""

    def __init__(self, session: AsyncSession):
        super().__init__(ShipmentAddress, session)


class ShipmentRepository(BaseRepository[Shipment]):
    """Repository for carrier shipment records."""

    def __init__(self, session: AsyncSession):
        super().__init__(Shipment, session)

    async def get_latest(self, request_id: uuid.UUID) -> Optional[Shipment]:
        query = select(Shipment).where(
            Shipment.shipment_request_id == request_id
        ).order_by(Shipment.created_at.desc())
        result = await self.session.exec(query)
        return result.first()
