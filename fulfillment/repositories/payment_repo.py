"""
Payment repositories.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.payment import Payment, PaymentStatus, BatchPayout
from fulfillment.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Repository for Payment operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    async def get_by_task(self, task_id: uuid.UUID) -> Optional[Payment]:
        return await self.get_by_field("task_id", task_id)

    async def get_many(self, payment_ids: List[uuid.UUID]) -> List[Payment]:
        if not payment_ids:
            return []
        result = await self.session.exec(select(Payment).where(Payment.id.in_(payment_ids)))
        return result.all()

    async def get_payable(self) -> List[Payment]:
        """Payments finance still has to settle (pending or failed)."""
        query = select(Payment).where(
            Payment.status.in_([PaymentStatus.PENDING.value, PaymentStatus.FAILED.value])
        ).order_by(Payment.created_at)
        result = await self.session.exec(query)
        return result.all()


class BatchPayoutRepository(BaseRepository[BatchPayout]):
    """Repository for BatchPayout operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(BatchPayout, session)

    async def get_by_idempotency_key(self, key: str) -> Optional[BatchPayout]:
        return await self.get_by_field("idempotency_key", key)
