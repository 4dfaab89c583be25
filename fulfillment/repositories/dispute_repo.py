"""
Dispute repository.
"""
import uuid
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.models.dispute import Dispute, DisputeStatus
from fulfillment.repositories.base import BaseRepository


class DisputeRepository(BaseRepository[Dispute]):
    """Repository for Dispute operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Dispute, session)

    async def get_open_for_task(self, task_id: uuid.UUID) -> Optional[Dispute]:
        query = select(Dispute).where(
            Dispute.task_id == task_id,
            Dispute.status == DisputeStatus.OPEN.value
        )
        result = await self.session.exec(query)
        return result.first()
